"""Shared constants for storyloop."""

# Run state lives next to the working tree
STATE_DIR = ".storyloop"
STATE_FILE = "state.json"
LOCK_FILE = "run.lock"
LAST_BRANCH_FILE = "last-branch"

ARCHIVE_DIR = "archive"
BRANCH_PREFIX = "storyloop/"

STATE_VERSION = 1

# Fenced block tag the agent must use for its machine-readable result
OUTPUT_MARKER = "json:storyloop-output"

CONFIG_FILENAMES = ("storyloop.yaml", ".storyloop.yaml")
