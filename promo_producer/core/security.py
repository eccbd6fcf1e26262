"""
Security Utilities
==================

URL durability checks, input sanitization, and related helpers.
"""

import base64
import binascii
import ipaddress
import re
import logging
from pathlib import Path
from typing import Iterable, Optional, Set, Tuple, Union
from urllib.parse import urlparse, parse_qs

from .exceptions import SecurityError, ValidationError

logger = logging.getLogger(__name__)


# Query parameters that mark a pre-signed or expiring URL
SIGNED_URL_PARAMS = {
    "x-amz-signature",
    "x-amz-credential",
    "x-amz-expires",
    "x-goog-signature",
    "signature",
    "expires",
    "se",
    "sig",
    "token",
}

DATA_URI_PATTERN = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(;[^;,]*)*?);base64,(?P<data>.*)$", re.DOTALL)


def sanitize_filename(filename: str, max_length: int = 255) -> str:
    """
    Sanitize a filename by removing dangerous characters.

    Args:
        filename: Original filename
        max_length: Maximum allowed length

    Returns:
        Sanitized filename safe for filesystem and object-key use
    """
    if not filename:
        return "unnamed"

    # Keep: alphanumeric, underscore, hyphen, dot, space
    sanitized = re.sub(r"[^\w\-. ]", "_", filename)

    # Remove multiple consecutive underscores/spaces
    sanitized = re.sub(r"[_\s]+", "_", sanitized)

    # Remove leading/trailing special characters
    sanitized = sanitized.strip("._- ")

    # Truncate if too long (preserve extension)
    if len(sanitized) > max_length:
        name = Path(sanitized).stem
        ext = Path(sanitized).suffix
        max_name_len = max_length - len(ext)
        sanitized = name[:max_name_len] + ext

    if not sanitized or sanitized in (".", ".."):
        sanitized = "unnamed"

    return sanitized


def build_storage_key(prefix: str, *parts: str) -> str:
    """
    Join sanitized parts into an object-store key.

    Raises:
        SecurityError: If any part attempts traversal
    """
    segments = [prefix.strip("/")] if prefix else []
    for part in parts:
        if ".." in part or part.startswith("/"):
            raise SecurityError(
                "Storage key contains traversal sequence",
                attempted_path=part,
                security_type="path_traversal",
            )
        segments.append(sanitize_filename(part))
    return "/".join(s for s in segments if s)


def sanitize_prompt(prompt: str, max_length: int = 2000) -> str:
    """
    Sanitize a prompt string before sending it to a generation provider.

    Args:
        prompt: User-provided prompt
        max_length: Maximum allowed length

    Returns:
        Sanitized prompt string
    """
    if not prompt:
        return ""

    # Remove control characters
    sanitized = "".join(char for char in prompt if char.isprintable() or char in "\n\t")

    injection_patterns = [
        r"ignore previous instructions",
        r"disregard above",
        r"system prompt",
        r"\[INST\]",
        r"\[/INST\]",
        r"<\|im_start\|>",
        r"<\|im_end\|>",
    ]

    for pattern in injection_patterns:
        sanitized = re.sub(pattern, "", sanitized, flags=re.IGNORECASE)

    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length]
        logger.warning(f"Prompt truncated from {len(prompt)} to {max_length} characters")

    return sanitized.strip()


def redact_api_key(text: str) -> str:
    """
    Redact API keys and sensitive tokens from text.

    Args:
        text: Text that might contain API keys

    Returns:
        Text with API keys redacted
    """
    if not text:
        return text

    patterns = [
        # Generic Bearer tokens
        (r"Bearer\s+[A-Za-z0-9_\-\.]+", "Bearer ***REDACTED***"),
        # fal.ai "Key <id>:<secret>" auth header
        (r"Key\s+[A-Za-z0-9_\-]+:[A-Za-z0-9_\-]+", "Key ***REDACTED***"),
        # Anthropic keys
        (r"sk-ant-[A-Za-z0-9_\-]+", "sk-ant-***REDACTED***"),
        # HuggingFace tokens
        (r"hf_[A-Za-z0-9]+", "hf_***REDACTED***"),
        # ElevenLabs header
        (r"xi-api-key['\"]?\s*[:=]\s*['\"]?[A-Za-z0-9_\-]+", "xi-api-key: ***REDACTED***"),
        # Generic API key patterns
        (r"api[_-]?key['\"]?\s*[:=]\s*['\"]?[A-Za-z0-9_\-]+", "api_key: ***REDACTED***"),
        # Query-string keys (Pixabay, Jamendo)
        (r"([?&](key|client_id)=)[^&\s]+", r"\1***REDACTED***"),
        # Environment variable patterns
        (
            r"(FAL_KEY|ELEVENLABS_API_KEY|HUGGINGFACE_API_TOKEN|PEXELS_API_KEY|PIXABAY_API_KEY|"
            r"JAMENDO_CLIENT_ID|PIAPI_API_KEY|ANTHROPIC_API_KEY)=[^\s]+",
            r"\1=***REDACTED***",
        ),
    ]

    result = text
    for pattern, replacement in patterns:
        result = re.sub(pattern, replacement, result, flags=re.IGNORECASE)

    return result


BLOCKED_HOSTNAMES = {"localhost", "metadata.google.internal"}


def validate_url(url: str, allowed_hosts: Optional[Set[str]] = None) -> str:
    """
    Check a provider asset URL before downloading it.

    Only plain http(s) URLs to public hosts are fetched. IP literals in
    loopback, private, link-local or reserved ranges are refused, as are
    URLs carrying credentials.

    Args:
        url: Asset URL returned by a provider
        allowed_hosts: Optional host allow-list

    Returns:
        The URL unchanged

    Raises:
        SecurityError: If the URL must not be fetched
    """
    if not url:
        raise SecurityError("Empty asset URL", security_type="invalid_url")

    try:
        parsed = urlparse(url)
        hostname = (parsed.hostname or "").lower()
    except ValueError as e:
        raise SecurityError(f"Malformed asset URL: {e}", security_type="invalid_url")

    if parsed.scheme not in ("http", "https"):
        raise SecurityError(f"Unsupported URL scheme: {parsed.scheme or 'none'}", security_type="invalid_url_scheme")
    if not hostname:
        raise SecurityError("Asset URL has no host", security_type="invalid_url")
    if parsed.username or parsed.password:
        raise SecurityError("Asset URL carries credentials", security_type="credentials_in_url")

    if hostname in BLOCKED_HOSTNAMES or hostname.endswith(".localhost"):
        raise SecurityError(f"Refusing local host: {hostname}", security_type="blocked_host")

    try:
        address = ipaddress.ip_address(hostname)
    except ValueError:
        address = None
    if address is not None and (
        address.is_loopback or address.is_private or address.is_link_local
        or address.is_reserved or address.is_unspecified or address.is_multicast
    ):
        raise SecurityError(f"Refusing non-public address: {hostname}", security_type="blocked_host")

    if allowed_hosts and hostname not in {h.lower() for h in allowed_hosts}:
        raise SecurityError(f"Host not in allowed list: {hostname}", security_type="blocked_host")

    return url


# =============================================================================
# Durable URL Checks
# =============================================================================


def is_data_uri(url: Optional[str]) -> bool:
    """Check if a URL is an inline base64 data URI."""
    return bool(url) and url.startswith("data:")


def is_signed_url(url: str) -> bool:
    """Check if a URL carries pre-signed/expiring query parameters."""
    query = parse_qs(urlparse(url).query)
    return any(key.lower() in SIGNED_URL_PARAMS for key in query)


def is_durable_url(url: Optional[str], ephemeral_hosts: Iterable[str] = ()) -> bool:
    """
    Check whether a URL can be handed to the renderer.

    A durable URL is https, is not inline-encoded, carries no signing
    parameters and is not served from a known ephemeral host.

    Args:
        url: URL to check
        ephemeral_hosts: Hostnames whose URLs expire

    Returns:
        True if the URL is durable
    """
    if not url or is_data_uri(url):
        return False

    try:
        parsed = urlparse(url)
    except ValueError:
        return False

    if parsed.scheme != "https" or not parsed.hostname:
        return False

    hostname = parsed.hostname.lower()
    for host in ephemeral_hosts:
        host = host.lower()
        if hostname == host or hostname.endswith("." + host):
            return False

    return not is_signed_url(url)


def decode_data_uri(url: str) -> Tuple[bytes, str]:
    """
    Decode an inline base64 data URI.

    Args:
        url: data:<mime>;base64,<payload>

    Returns:
        Tuple of (raw bytes, mime type)

    Raises:
        ValidationError: If the URI is malformed
    """
    match = DATA_URI_PATTERN.match(url or "")
    if not match:
        raise ValidationError(
            "Not a base64 data URI",
            field="url",
            value=(url or "")[:40],
            constraint="data:<mime>;base64,<payload>",
        )

    try:
        data = base64.b64decode(match.group("data"), validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationError(f"Invalid base64 payload: {e}", field="url")

    if not data:
        raise ValidationError("Empty data URI payload", field="url")

    return data, match.group("mime") or "application/octet-stream"


def encode_data_uri(data: Union[bytes, bytearray], mime_type: str) -> str:
    """Encode raw bytes as an inline data URI."""
    return f"data:{mime_type};base64,{base64.b64encode(bytes(data)).decode('ascii')}"
