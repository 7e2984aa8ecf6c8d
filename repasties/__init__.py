"""
Repasties — Application Package
================================

What: A small pastebin: submit a snippet, get it back syntax highlighted,
      browse the latest snippets per language.

Layers:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │  SnippetStore · HighlightRenderer   │  ← validation, highlighting, queries
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy table + Pydantic
    ├─────────────────────────────────────┤
    │   ConnectionManager (Persistence)   │  ← one connection per operation
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
