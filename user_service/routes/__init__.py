"""
User Service — API Routes Package
===================================

Route Inventory:
    - users.py:  GET  /users   (list every user)
                 POST /users   (create a user named "John Doe")

Routes stay thin: pull the session and service from dependencies, call the
service, return the schema. Errors propagate to the global handlers.
"""
