import os
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "provider": "groq",  # groq | openai | anthropic
    "model": "llama3-70b-8192",  # must be listed in tokens.MODEL_TOKEN_LIMITS
    "review_format": "xml",  # xml = structured suggestions + inline fixes, text = one free-form review
    "inline_fixes": True,
    "max_chars_per_file": 20000,
    "token_headroom": 1024,  # tokens kept free for the model's reply
    "exclude": [],  # fnmatch patterns or directory names to skip (e.g. "migrations/", "*.min.js")
    "review_draft_prs": False,
}

_API_KEY_ENV = {
    "groq": "GROQ_API_KEY",
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}


def load_config(config_path: str = ".patchwise.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .patchwise.yml in the current directory
      3. CLI argument overrides
    """
    config = {**DEFAULT_CONFIG, "exclude": list(DEFAULT_CONFIG["exclude"])}

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    # Resolve credentials from environment variables
    config["github_token"] = os.environ.get("GITHUB_TOKEN")
    for provider, env_var in _API_KEY_ENV.items():
        config[f"{provider}_api_key"] = os.environ.get(env_var)

    return config


def api_key_env_var(provider: str) -> str | None:
    """Return the environment variable holding the API key for a provider."""
    return _API_KEY_ENV.get(provider)
