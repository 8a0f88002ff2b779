"""TD Vault.

Credential vault for a connection-profile manager. The cryptographic core
lives in :mod:`tdvault.vault`; redaction helpers for command previews, logs
and error messages live in :mod:`tdvault.redaction` and
:mod:`tdvault.command`.
"""
from .version import __version__

__all__ = ["__version__"]
