"""
Constants for autotag.

These constants are used by various modules for sensible defaults.
Most of the remote ones can be overridden via the config system.
"""

# Keyword ranking
MAX_SUGGESTED_TAGS = 10
MIN_KEYWORD_LENGTH = 4

# Remote completion service
DEFAULT_COMPLETION_ENDPOINT = "https://api.openai.com/v1/completions"
DEFAULT_COMPLETION_MODEL = "gpt-3.5-turbo-instruct"
DEFAULT_COMPLETION_MAX_TOKENS = 60
DEFAULT_COMPLETION_TEMPERATURE = 0.5
DEFAULT_REQUEST_TIMEOUT = 60

KEYWORD_PROMPT = "Extract relevant keywords from the following text:\n\n"

# Host-facing messages
EMPTY_CONTENT_MESSAGE = "Document content is empty."
NO_TAGS_MESSAGE = "No suggested tags found."

# HTTP endpoint
DEFAULT_SERVER_HOST = "127.0.0.1"
DEFAULT_SERVER_PORT = 8000
