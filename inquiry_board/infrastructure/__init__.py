"""
Infrastructure Layer
=====================

Adapters for everything outside the process:
- Database engine and unit of work
- Credential encryption
- Reasoning service clients
- Notification endpoints
- Remote shell access to managed servers
"""
