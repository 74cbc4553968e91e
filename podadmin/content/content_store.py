"""
Markdown content files kept next to the database records
"""

import logging
from pathlib import Path
from typing import Optional, Union

from fastapi import Request

logger = logging.getLogger(__name__)


class ContentFileStore:
    """Read-only access to text files under a fixed root directory"""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root).resolve()

    def read(self, relative_path: Optional[str]) -> Optional[str]:
        """
        Read UTF-8 text at root/relative_path

        Returns:
            File contents, or None when the path is empty, missing, not a
            regular file, outside the root, or unreadable
        """
        if not relative_path:
            return None

        target = (self.root / relative_path).resolve()
        if target != self.root and self.root not in target.parents:
            logger.warning("Refusing content path outside %s: %s", self.root, relative_path)
            return None

        if not target.is_file():
            return None

        try:
            return target.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Error loading content file %s: %s", target, e)
            return None

    def read_stage_markdown(self, stage_key: Optional[str]) -> Optional[str]:
        if not stage_key:
            return None
        return self.read(f"content/stages/{stage_key}.md")


def get_content_store(request: Request) -> ContentFileStore:
    return request.app.state.content_store
