"""Prisma language server manager implementation."""

from typing import Any, Dict

from prismalsp.servers.base import BaseLanguageServerManager


class PrismaLanguageServerManager(BaseLanguageServerManager):
    """Manages the Prisma language server."""

    @property
    def language(self) -> str:
        """Get the language managed by this server.

        Returns:
            The language name.
        """
        return "prisma"

    @property
    def server_settings(self) -> Dict[str, Any]:
        # An empty path lets the server use its bundled prisma-fmt
        return {
            "prisma": {
                "prismaFmtBinPath": ""
            }
        }
