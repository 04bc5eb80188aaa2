import base64
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union


@dataclass(frozen=True)
class NumberId:
    """Recipient id as resolved by the messaging backend."""
    serialized: str          # e.g. "12345678901@c.us"
    user: Optional[str] = None


@dataclass(frozen=True)
class MediaPayload:
    mimetype: str
    filename: str
    data: str                # base64 encoded file contents

    @classmethod
    def from_file_path(cls, path: Union[str, Path]) -> "MediaPayload":
        """Load a local file as an attachable media payload."""
        file_path = Path(path)
        mimetype, _ = mimetypes.guess_type(file_path.name)
        data = base64.b64encode(file_path.read_bytes()).decode("ascii")
        return cls(
            mimetype=mimetype or "application/octet-stream",
            filename=file_path.name,
            data=data,
        )


MessageContent = Union[str, MediaPayload]


@dataclass(frozen=True)
class SentMessage:
    id: Optional[str]
    chat_id: str
    raw: Optional[dict] = None

    @property
    def message_id(self) -> str:
        return self.id or "unknown"


def extract_message_id(raw: Any) -> Optional[str]:
    """
    Pull a message id out of a backend response.

    Backends report the id either as a plain string or as an object
    carrying ``id`` and/or ``_serialized``.
    """
    if not raw:
        return None

    if isinstance(raw, dict):
        ident = raw.get("id", raw)
    else:
        ident = getattr(raw, "id", raw)

    if isinstance(ident, str):
        return ident or None
    if isinstance(ident, dict):
        return ident.get("id") or ident.get("_serialized") or None
    if ident is None:
        return None
    return str(ident)
