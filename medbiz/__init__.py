"""
Medbiz — Back office for a medical-supplies distributor

Packages:
    terms/   Terms & conditions resolution, formatting and PDF injection
    forms/   Document PDF rendering
    api/     Flask routes (settings editor, document endpoints)
    core/    Shared configuration, persistence, and paths
"""
