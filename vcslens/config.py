"""
Configuration module for vcslens
Settings are read from the environment, optionally through a .env file
"""

import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class AppConfig:
  """Application configuration settings"""

  # Diff settings
  DIFF_CONTEXT_LINES = int(os.getenv("VCSLENS_DIFF_CONTEXT_LINES", "3"))
  # Prefixes git puts in front of header paths
  PATH_PREFIXES = tuple(
    p for p in os.getenv("VCSLENS_PATH_PREFIXES", "a/,b/").split(",") if p
  )

  # History settings
  GRAPH_PAGE_SIZE = int(os.getenv("VCSLENS_GRAPH_PAGE_SIZE", "50"))

  # Raw file streaming
  BINARY_CHUNK_SIZE = int(os.getenv("VCSLENS_BINARY_CHUNK_SIZE", "8192"))

  # Logging
  LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
