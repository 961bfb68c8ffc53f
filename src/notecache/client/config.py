"""Connection settings for the HTTP remote store client."""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_TIMEOUT: float = 30.0


@dataclass
class ClientConfig:
    """Configuration for :class:`~notecache.client.http.HttpRemoteStoreClient`."""

    base_url: str
    """API root, e.g. ``"https://notes.example.com/api"``."""

    timeout: float = DEFAULT_TIMEOUT
    """Per-request timeout in seconds."""

    headers: dict[str, str] = field(default_factory=dict)
    """Extra headers sent with every request."""

    follow_redirects: bool = True

    def __post_init__(self) -> None:
        self.base_url = self.base_url.strip().rstrip("/")
        if not self.base_url:
            raise ValueError("base_url must not be empty")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")
