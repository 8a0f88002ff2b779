"""TD Vault Meta information.
   TD Vault keeps connection credentials encrypted under a master passphrase.
"""
__title__ = 'tdvault'
__description__ = (
   'Local credential vault for connection profiles: Argon2id master key, '
   'authenticated per-secret encryption and redaction helpers.'
)
__version__ = '0.1.0'
__copyright__ = 'Copyright (c) 2026 TD Vault contributors'
__author__ = 'TD Vault contributors'
__license__ = 'Apache-2.0'
