"""Constants for restic-exporter."""

# External tool
RESTIC_EXECUTABLE = "restic"

# Flags understood by the tool
REPO_FLAG = "--repo"
JSON_FLAG = "--json"
INSECURE_NO_PASSWORD_FLAG = "--insecure-no-password"

# Message type tags in `backup --json` output
MESSAGE_TYPE_STATUS = "status"
MESSAGE_TYPE_SUMMARY = "summary"

# Configuration
CONFIG_FILE = "restic-exporter.yaml"
ENV_REPOSITORY = "RESTIC_REPOSITORY"
ENV_EXECUTABLE = "RESTIC_EXPORTER_EXECUTABLE"
ENV_PORT = "RESTIC_EXPORTER_PORT"
ENV_INTERVAL = "RESTIC_EXPORTER_INTERVAL"

DEFAULT_LISTEN_ADDR = "0.0.0.0"
DEFAULT_LISTEN_PORT = 9150
DEFAULT_INTERVAL_SECONDS = 60

# Version
EXPORTER_VERSION = "0.1.0"
