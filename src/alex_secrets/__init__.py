"""
alex - keep secrets out of AI agent scope.

Secrets live in an encrypted vault instead of your shell environment and are
injected only into commands you launch explicitly.

Features:
- set/unset: Manage secrets per user (global) or per project
- list: Show secret names and update times (values never shown)
- run: Execute a command with secrets injected, after a safety check
- import: Pull secrets in from a .env file
- doctor: Diagnose machine identity, project detection and storage

Requires: cryptography (scrypt + AES-GCM), PyYAML, rich, python-dotenv
"""

__version__ = "0.1.0"
