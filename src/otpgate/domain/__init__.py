"""Domain layer for otpgate.

Entities, collaborator contracts, the error taxonomy and the authentication
orchestrator. Nothing here imports a web framework or database driver.
"""
