"""
API Blueprints Package

All HTTP route handlers for the application, organized by domain.
Each module defines a Flask Blueprint registered in app/__init__.py.

BLUEPRINT REFERENCE:
====================
- records.py   : CRUD for clients, projects, invoices, proposals, appointments
- signing.py   : Signing links (staff) and the public signer endpoints (/sign/*)
- dashboard.py : Dashboard summary statistics

Health endpoints live in health_checks.py at the project root.
"""
