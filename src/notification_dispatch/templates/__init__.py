"""Template loading and rendering.

Loaders fetch raw template bytes from a blob store; :func:`render_template`
applies parameter substitution. :func:`create_template_loader` builds the
loader selected in the settings.
"""

from __future__ import annotations

from typing import Any

from .base import TemplateLoaderBase
from .filesystem_loader import FilesystemTemplateLoader
from .render import render_template, substitute

__all__ = [
    "TemplateLoaderBase",
    "FilesystemTemplateLoader",
    "create_template_loader",
    "render_template",
    "substitute",
]


def create_template_loader(backend: str, **options: Any) -> TemplateLoaderBase:
    """Instantiate the loader for ``backend`` ("filesystem" or "s3")."""
    backend = (backend or "filesystem").lower()
    if backend == "filesystem":
        base_dir = options.get("base_dir")
        if not base_dir:
            raise ValueError("templates.base_dir is required for the filesystem backend")
        return FilesystemTemplateLoader(base_dir)
    if backend == "s3":
        from .s3_loader import S3TemplateLoader

        bucket = options.get("bucket")
        if not bucket:
            raise ValueError("templates.bucket is required for the s3 backend")
        return S3TemplateLoader(bucket, region=options.get("region"))
    raise ValueError(f"Unknown template backend: {backend}")
