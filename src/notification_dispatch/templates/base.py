"""Base protocol for template loaders.

A loader receives the full object key built by the resolver
(``templates/emails/<name>``) and returns the raw template bytes. The
protocol lets the resolver work with any blob store interchangeably.
"""

from __future__ import annotations


class TemplateLoaderBase:
    """Abstract base class defining the template loader interface."""

    async def load(self, key: str) -> bytes:
        """Retrieve template content from storage.

        Args:
            key: Object key of the template, e.g. ``templates/emails/welcome``.

        Returns:
            Raw template bytes.

        Raises:
            TemplateNotFound: If no template exists under ``key``.
            NotImplementedError: If called on the base class directly.
        """
        raise NotImplementedError

    async def close(self) -> None:
        """Release backend resources. Optional for implementations."""
        return None
