"""
Repasties — Services Layer
===========================

Service Inventory:
    - HighlightStrategy (abstract): interface for syntax highlighters
    - LocalHighlighter / RemoteHighlighter: pygmentize subprocess, web service
    - HighlightRenderer: "text" pass-through plus the selected strategy
    - SnippetQuery: filter/pluck/order_by/limit builder compiled to one SELECT
    - SnippetStore: create/get/list snippets and bootstrap the schema
"""
