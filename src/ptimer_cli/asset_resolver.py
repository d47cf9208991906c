#!/usr/bin/env python3
"""
Asset Resolver

Loads the files referenced by a program's steps, relative to the
directory of the description document.
"""

import errno
import logging
import mimetypes
import os
from pathlib import Path
from typing import Dict, Iterable, Union

from .models import Asset

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def guess_content_type(asset_id: str) -> str:
    """Infer a MIME type from the file extension."""
    content_type, _ = mimetypes.guess_type(asset_id, strict=False)
    return content_type or DEFAULT_CONTENT_TYPE


def resolve_assets(
    references: Iterable[str], base_dir: Union[str, Path]
) -> Dict[str, Asset]:
    """
    Load every referenced asset exactly once.

    Args:
        references: Normalized asset references, in first-use order
        base_dir: Directory the references are relative to

    Returns:
        Mapping from reference to loaded Asset, in first-use order

    Raises:
        FileNotFoundError: If a referenced file does not exist
        OSError: If a referenced file cannot be read
    """
    base_dir = Path(base_dir)
    assets: Dict[str, Asset] = {}

    for reference in references:
        if reference in assets:
            continue

        asset_path = base_dir / reference
        if not asset_path.is_file():
            raise FileNotFoundError(
                errno.ENOENT, "Asset file not found", os.fspath(asset_path)
            )

        data = asset_path.read_bytes()
        assets[reference] = Asset(
            asset_id=reference,
            content_type=guess_content_type(reference),
            data=data,
        )
        logger.debug(
            "Loaded asset %s (%s, %d bytes)",
            reference,
            assets[reference].content_type,
            len(data),
        )

    return assets
