"""
meez - Prompt Logger.

Logs LLM prompts and raw responses to markdown files for debugging.
Enabled via MEEZ_LOG_PROMPTS=1 or the --log-prompts CLI flag.
"""

import os
from datetime import datetime
from pathlib import Path

# Configuration
LOG_PROMPTS = os.getenv("MEEZ_LOG_PROMPTS", "0") == "1"
LOG_DIR = Path("prompt_logs")

# Session tracking
_session_id: str | None = None
_call_counter: int = 0


def enable_prompt_logging(enabled: bool = True) -> None:
    """Enable or disable prompt logging."""
    global LOG_PROMPTS
    LOG_PROMPTS = enabled


def _get_session_dir() -> Path:
    """Get (and create) the directory for this session's logs."""
    global _session_id
    if _session_id is None:
        _session_id = datetime.now().strftime("%Y%m%d_%H%M%S")
    session_dir = LOG_DIR / _session_id
    session_dir.mkdir(parents=True, exist_ok=True)
    return session_dir


def log_prompt(
    *,
    provider: str,
    model: str,
    system_prompt: str,
    user_prompt: str,
    request_id: str | None = None,
    response: str | None = None,
    error: str | None = None,
    usage: dict | None = None,
) -> Path | None:
    """
    Log a prompt and raw response to a file.

    Args:
        provider: Which provider handled the call (gemini, openai)
        model: The model used
        system_prompt: The system instruction
        user_prompt: The user text
        request_id: Request id for correlating with application logs
        response: Raw model output (optional)
        error: Any error that occurred (optional)
        usage: Normalized token usage

    Returns:
        Path to the log file, or None if logging is disabled
    """
    if not LOG_PROMPTS:
        return None

    global _call_counter
    _call_counter += 1

    filepath = _get_session_dir() / f"{_call_counter:02d}_{provider}.md"

    usage_str = ""
    if usage:
        usage_str = f"\n**Usage:** input={usage.get('input_tokens', 0)}, output={usage.get('output_tokens', 0)}"

    content = f"""# LLM Call: {provider}

**Time:** {datetime.now().isoformat()}
**Model:** {model}
**Request:** {request_id or "-"}{usage_str}

---

## System Prompt

```
{system_prompt}
```

---

## User Prompt

```
{user_prompt}
```

---

## Response

"""

    if error:
        content += f"**ERROR:** {error}\n"
    elif response:
        content += f"```\n{response}\n```\n"
    else:
        content += "(Empty response)\n"

    filepath.write_text(content, encoding="utf-8")

    return filepath


def get_session_log_dir() -> Path | None:
    """Get the current session's log directory, if logging is enabled."""
    if not LOG_PROMPTS:
        return None
    return _get_session_dir()


def reset_session() -> None:
    """Reset the session (for testing or a new run)."""
    global _session_id, _call_counter
    _session_id = None
    _call_counter = 0
