"""Preview addressing and sandbox metadata for compiled artifacts."""

from __future__ import annotations

import re
from datetime import datetime, timezone

from prototyper.schemas import SandboxConfig

PREVIEW_SLUG_PREFIX = "preview-"
SANDBOX_RUNTIME = "react18"
SANDBOX_ALLOWED_GLOBALS = ("React", "useState", "useEffect")

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]", re.IGNORECASE)


def build_preview_slug(prompt_id: str) -> str:
    """Derive the preview slug of a prompt from its id.

    Pure: the same id always yields the same slug.
    """
    compact = _NON_ALNUM_RE.sub("", prompt_id)[:12]
    return f"{PREVIEW_SLUG_PREFIX}{compact or prompt_id[:8]}"


def build_sandbox_config(compiled_at: datetime | None = None) -> SandboxConfig:
    return SandboxConfig(
        runtime=SANDBOX_RUNTIME,
        allowed_globals=list(SANDBOX_ALLOWED_GLOBALS),
        compiled_at=compiled_at or datetime.now(timezone.utc),
    )
