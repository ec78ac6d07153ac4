"""
ReWear Backend — API Routes Package
=====================================

Route Inventory:
    - health.py:  GET  /health, /api/health
    - auth.py:    POST /api/auth/register, /api/auth/login
    - users.py:   GET/PUT /api/user/profile
    - items.py:   GET/POST /api/items, GET/PUT/DELETE /api/items/{id},
                  GET /api/files/{path}
    - swaps.py:   GET/POST /api/swaps, PUT /api/swaps/{id}
    - admin.py:   GET /api/admin/items, PUT /api/admin/items/{id}/approve,
                  DELETE /api/admin/items/{id}, GET /api/admin/stats

Routes stay thin: extract request data, call a service, shape the response.
"""
