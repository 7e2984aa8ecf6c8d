"""
Repasties — API Routes Package
===============================

Route Inventory:
    - snippets.py:  GET  /                      (submission form + languages)
                    POST /api/snippets          (create)
                    GET  /api/snippets/{id}     (detail)
                    GET  /api/lang/{lang}       (latest in a language)
    - health.py:    GET  /health                (service health check)
"""
