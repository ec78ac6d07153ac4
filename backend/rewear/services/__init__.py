"""
ReWear Backend — Services Layer
=================================

What:  Business logic between routes (HTTP) and stores (persistence).
How:   Services are stateless singletons; each call receives the request's
       AsyncSession and the verified Principal.

Service Inventory:
    - SwapService:       swap proposal, lifecycle and settlement
    - CatalogService:    listing creation, search, availability, deletion
    - ModerationService: admin approval gate
    - StatsService:      admin counters
    - AuthService:       registration, login, admin bootstrap
    - UserService:       profile read/edit
    - MediaService:      listing image validation, storage and removal
"""
