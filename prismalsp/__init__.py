"""Prisma Language Server Integration.

Provisions a pinned version of the Prisma language server through npm and
registers a command that launches it over stdio for a language client.
"""

__version__ = "0.1.0"
