"""
Failure renderers.

Turn pipeline failures into Markdown answers the chat front end can
display like any other message, plus the debug payload attached to
500 responses outside production.
"""

import os
import traceback
from datetime import datetime, timezone
from typing import Any, Optional
from .exceptions import DocChatError, CompletionError


def format_document_unavailable(document_url: str) -> str:
    """Answer shown when the source document cannot be loaded."""
    return (
        "❌ **Documento no disponible**\n\n"
        "No se pudo procesar el documento de referencia en este momento. "
        "Por favor, intenta nuevamente en unos minutos.\n\n"
        f"> Documento: {document_url}"
    )


def format_completion_error(error: CompletionError) -> str:
    """Render a completion failure as a readable Markdown block.

    Always mentions the upstream status code when there is one so the
    user (and support) can tell a rate limit from an outage.
    """
    if error.status_code:
        title = f"❌ **Error de la API ({error.status_code})**"
    elif error.error_type == "timeout":
        title = "❌ **Error de la API (tiempo de espera agotado)**"
    else:
        title = "❌ **Error de la API**"

    lines = [title, "", error.message]
    if error.upstream_type:
        lines.append(f"- **Tipo:** {error.upstream_type}")
    if error.upstream_message:
        lines.append(f"- **Mensaje:** {error.upstream_message}")
    if error.upstream_code:
        lines.append(f"- **Código:** {error.upstream_code}")
    lines.extend(["", "Por favor, intenta nuevamente."])
    return "\n".join(lines)


def error_location(error: BaseException) -> Optional[str]:
    """Return ``file:line (function)`` of the frame that raised ``error``."""
    frames = traceback.extract_tb(error.__traceback__) if error.__traceback__ else []
    if not frames:
        return None
    frame = frames[-1]
    return f"{os.path.basename(frame.filename)}:{frame.lineno} ({frame.name})"


def format_unexpected_error(error: BaseException, session_id: Optional[str] = None) -> str:
    """Format an uncaught error into a diagnostic Markdown message."""
    timestamp = datetime.now(timezone.utc).isoformat()
    location = error_location(error) or "desconocida"
    return "\n".join(
        [
            "❌ **Error interno**",
            "",
            f"- **Tipo:** {type(error).__name__}",
            f"- **Mensaje:** {error}",
            f"- **Ubicación:** {location}",
            f"- **Sesión:** {session_id or 'N/A'}",
            f"- **Fecha:** {timestamp}",
        ]
    )


def debug_payload(error: BaseException, **extra: Any) -> dict:
    """Debug details attached to 500 responses outside production."""
    payload = {
        "exception": type(error).__name__,
        "message": str(error),
        "location": error_location(error),
    }
    if isinstance(error, DocChatError):
        payload["code"] = error.code.value
    payload.update(extra)
    return payload
