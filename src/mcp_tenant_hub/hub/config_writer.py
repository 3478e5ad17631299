"""
Writes the generated hub configuration to the file the hub watches.

The file is replaced atomically: content goes to a temporary file in the same
directory, is fsynced, then renamed over the target. A reader never sees a
partially written document.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Union

from mcp_tenant_hub.core.exceptions import MaterializationError
from mcp_tenant_hub.core.models import GeneratedConfigDocument
from mcp_tenant_hub.utils.logging import get_logger

logger = get_logger(__name__)


class ConfigWriter:
    """Manages reading and writing the hub configuration file."""

    def serialize(self, document: GeneratedConfigDocument) -> str:
        """Stable, pretty-printed JSON for the document."""
        return json.dumps(document.to_file_dict(), indent=2, sort_keys=True) + "\n"

    def materialize(
        self,
        document: GeneratedConfigDocument,
        target_path: Union[str, Path],
    ) -> Path:
        """
        Replace the target file with the serialized document.

        Args:
            document: Configuration to write
            target_path: File the hub process reads

        Returns:
            The path written

        Raises:
            MaterializationError: If the file could not be written. The
                previous file, if any, is left untouched.
        """
        target = Path(target_path)
        payload = self.serialize(document)
        tmp_name = None

        try:
            target.parent.mkdir(parents=True, exist_ok=True)

            fd, tmp_name = tempfile.mkstemp(
                dir=str(target.parent),
                prefix=f".{target.name}.",
                suffix=".tmp",
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())

            os.chmod(tmp_name, 0o644)
            os.replace(tmp_name, target)
            tmp_name = None

        except OSError as e:
            logger.error(f"Failed to write hub config to {target}: {e}")
            raise MaterializationError(
                f"Failed to write hub config: {e}",
                details={"path": str(target)},
            ) from e

        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except FileNotFoundError:
                    pass

        logger.info("Hub configuration written", extra={
            "path": str(target),
            "servers": len(document),
        })
        return target

    def read(self, target_path: Union[str, Path]) -> GeneratedConfigDocument:
        """
        Load the configuration currently on disk.

        Returns an empty document when the file does not exist yet.
        """
        target = Path(target_path)
        if not target.exists():
            return GeneratedConfigDocument()

        try:
            with open(target, "r", encoding="utf-8") as f:
                return GeneratedConfigDocument.from_file_dict(json.load(f))
        except (OSError, json.JSONDecodeError) as e:
            raise MaterializationError(
                f"Failed to read hub config: {e}",
                details={"path": str(target)},
            ) from e
