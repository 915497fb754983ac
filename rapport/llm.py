"""LLM interface for Rapport.

Two providers:

- "claude-cli": the `claude` CLI in --print mode (no API key needed)
- "openai": any OpenAI-style chat-completions endpoint over HTTP

Both return "" on any failure; callers decide what to fall back to.
"""

import json
import logging
import os
import re
import shutil
import subprocess

import requests

logger = logging.getLogger(__name__)

CLAUDE_CLI = "claude-cli"
OPENAI = "openai"
PROVIDERS = (CLAUDE_CLI, OPENAI)

DEFAULT_SYSTEM = "You are a helpful assistant. Respond concisely."


def _find_claude() -> str | None:
    """Find the claude CLI executable."""
    return shutil.which("claude")


def call_claude_cli(prompt: str, system: str = "", model: str = "haiku",
                    timeout: float = 120) -> str:
    """Call a Claude model via the claude CLI in --print mode.

    The prompt goes in on stdin; transcripts are too long for argv.
    """
    claude_path = _find_claude()
    if not claude_path:
        logger.warning("claude CLI not found in PATH")
        return ""

    cmd = [
        claude_path,
        "-p",
        "--model", model,
        "--no-session-persistence",
        "--output-format", "text",
        "--system-prompt", system or DEFAULT_SYSTEM,
    ]

    try:
        result = subprocess.run(
            cmd,
            input=prompt,
            capture_output=True,
            text=True,
            timeout=timeout,
            cwd="/tmp",  # avoid picking up CLAUDE.md from home dir
            env={**os.environ, "TOKENIZERS_PARALLELISM": "false"},
        )
        output = result.stdout.strip()
        if result.returncode != 0 and not output:
            stderr = result.stderr.strip()
            logger.warning(f"claude CLI error: {stderr[:200]}")
            return ""
        return output
    except subprocess.TimeoutExpired:
        logger.warning(f"claude CLI timed out after {timeout}s")
        return ""
    except OSError as e:
        logger.error(f"claude CLI failed to start: {e}")
        return ""


def call_openai(prompt: str, system: str = "", model: str = "gpt-4o-mini",
                api_url: str = "", api_key: str = "", timeout: float = 120,
                temperature: float = 0.3, max_tokens: int = 2000) -> str:
    """Call an OpenAI-style chat-completions endpoint."""
    if not api_url:
        logger.warning("no API URL configured for the openai provider")
        return ""
    try:
        response = requests.post(
            api_url,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            json={
                "model": model,
                "messages": [
                    {"role": "system", "content": system or DEFAULT_SYSTEM},
                    {"role": "user", "content": prompt},
                ],
                "temperature": temperature,
                "max_tokens": max_tokens,
            },
            timeout=timeout,
        )
        response.raise_for_status()
        return response.json()["choices"][0]["message"]["content"].strip()
    except requests.Timeout:
        logger.warning(f"insight endpoint timed out after {timeout}s")
        return ""
    except requests.RequestException as e:
        logger.warning(f"insight endpoint error: {e}")
        return ""
    except (KeyError, IndexError, TypeError, ValueError) as e:
        logger.warning(f"unexpected insight endpoint response: {e}")
        return ""


def call_llm(prompt: str, system: str = "", provider: str = CLAUDE_CLI,
             model: str = "haiku", timeout: float = 120, **kwargs) -> str:
    """Dispatch to the configured provider. Returns "" on error."""
    if provider == OPENAI:
        return call_openai(prompt, system=system, model=model, timeout=timeout, **kwargs)
    if provider != CLAUDE_CLI:
        logger.warning(f"unknown LLM provider {provider!r}, using {CLAUDE_CLI}")
    return call_claude_cli(prompt, system=system, model=model, timeout=timeout)


def strip_fences(text: str) -> str:
    text = re.sub(r'^```(?:json)?\s*', '', text.strip(), flags=re.MULTILINE)
    text = re.sub(r'```\s*$', '', text, flags=re.MULTILINE)
    return text.strip()


def call_llm_json(prompt: str, system: str = "", **kwargs) -> dict | None:
    """Call the model and parse the response as JSON.

    Strips markdown fences if present. Returns None on parse failure.
    """
    raw = call_llm(prompt, system=system, **kwargs)
    if not raw:
        return None

    text = strip_fences(raw)
    try:
        return json.loads(text)
    except (ValueError, RecursionError):
        logger.warning(f"JSON parse failed: {text[:200]}")
        return None
