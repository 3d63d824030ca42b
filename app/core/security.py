import re
import html
import secrets
from typing import Optional

def sanitize_input(text: Optional[str]) -> Optional[str]:
    """Basic input sanitization to prevent XSS in free-text fields."""
    if not isinstance(text, str):
        return text
    # Remove script blocks before escaping, otherwise the tags no longer match
    sanitized = re.sub(r'<script.*?>.*?</script>', '', text, flags=re.DOTALL | re.IGNORECASE)
    return html.escape(sanitized.strip())

def generate_reset_token() -> str:
    """32 random bytes rendered as 64 hex characters."""
    return secrets.token_hex(32)
