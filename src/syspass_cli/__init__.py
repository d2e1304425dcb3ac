"""syspass-cli - Command-line client for sysPass password vaults.
Talks to the sysPass JSON-RPC API (v2 and v3) over HTTPS.
"""

__version__ = "1.0.0"
