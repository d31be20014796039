"""CLI command modules.

Commands are grouped by concern:
- settings: Resolved configuration and version
- deploy: plan, build and deploy
- self_update: Replace rops with a newer release
"""
