"""PDF rendering for outbound documents.

Key exports:
    generate_document_pdf() — render any of the eight document kinds
"""
