"""Flask routes.

Modules:
    routes_terms — settings editor, document terms and PDF endpoints
"""
