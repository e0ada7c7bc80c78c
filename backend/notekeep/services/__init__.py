"""
Notekeep Backend: Services Package
====================================

Business logic lives here, independent of HTTP concerns:
    - token_service:       sign and verify session tokens
    - auth_service:        register, login, authenticate, profile
    - file_service:        attachment validation and storage
    - note_service:        owner-scoped note CRUD
    - request_log_service: audit log queries
    - request_log_sink:    background writer for audit rows
"""
