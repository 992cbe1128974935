# csp.py
"""
Content-Security-Policy helpers.

A nonce authorizes inline scripts for one rendered document only. Generate a
new one for every response and never cache or reuse it.
"""
import re
import secrets

MIN_NONCE_BYTES = 16
CSP_HEADER = 'Content-Security-Policy'

_NONCE_RE = re.compile(r"[0-9a-f]+")


def generate_nonce(nbytes: int = MIN_NONCE_BYTES) -> str:
    """Return `nbytes` of cryptographically random data, hex-encoded."""
    if nbytes < MIN_NONCE_BYTES:
        raise ValueError(f"A nonce needs at least {MIN_NONCE_BYTES} bytes of entropy")
    return secrets.token_hex(nbytes)


def _directives(nonce: str) -> list[str]:
    return [
        "default-src 'self'",
        f"script-src 'self' 'nonce-{nonce}'",
        "style-src 'self' 'unsafe-inline'",
        "img-src 'self' data: https:",
        "font-src 'self'",
        "connect-src 'self' wss: https:",
        "frame-src 'none'",
        "object-src 'none'",
        "base-uri 'self'",
        "form-action 'self'",
    ]


def build_policy(nonce: str) -> str:
    if not isinstance(nonce, str) or not _NONCE_RE.fullmatch(nonce):
        raise ValueError("Nonce must be a non-empty lowercase hex string")
    return '; '.join(_directives(nonce))


def build_meta_tag(nonce: str) -> str:
    return f'<meta http-equiv="{CSP_HEADER}" content="{build_policy(nonce)}">'


def build_headers(nonce: str) -> dict[str, str]:
    return {CSP_HEADER: build_policy(nonce)}
