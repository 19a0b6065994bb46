"""
dbclient-vault: encrypted connection profile store for a desktop database client.

Connection profiles (host, credentials, SSH tunnel and TLS settings) are kept
in a local SQLite database. Secrets are sealed with AES-256-GCM before they
are written, under a key from a password (Argon2id), a random key file, or a
placeholder passphrase.
"""

__version__ = "0.1.0"
