"""
Notekeep Backend: API Routes Package
======================================

Route Inventory:
    - auth.py:    POST /register, POST /login, GET /me
    - notes.py:   /notes CRUD and /notes/{id}/image
    - logs.py:    GET /logs, GET /logs/{id}
    - health.py:  GET /health

Design Principle:
    Routes are THIN. They extract data from the request, call a service and
    pick the status code. Business logic belongs in services.
"""
