"""Configuration constants for modsync.

Named constants for directory layout, file naming and transfer defaults.
"""

# -----------------------------------------------------------------------------
# Instance Layout
# -----------------------------------------------------------------------------

# Subdirectory of the instance root holding mod archives
MODS_DIRNAME: str = "mods"

# Suffix appended to a mod filename to disable it without deleting it
DISABLED_SUFFIX: str = ".disabled"

# Instance metadata written by the launcher
INSTANCE_MANIFEST_FILENAME: str = "minecraftinstance.json"

# Leading segment of override keys in the plan; stripped before resolving
OVERRIDES_PREFIX: str = "overrides/"


# -----------------------------------------------------------------------------
# Transfer Defaults
# -----------------------------------------------------------------------------

# Seconds before an HTTP request is abandoned
DEFAULT_FETCH_TIMEOUT: int = 60

# Bytes per streamed chunk when writing downloads to disk
DEFAULT_CHUNK_SIZE: int = 64 * 1024

DEFAULT_USER_AGENT: str = "modsync/0.1.0"

# Header carrying the API key for the mod repository
API_KEY_HEADER: str = "x-api-key"

# Suffix of in-progress download and safe-write temp files
TEMP_SUFFIX: str = ".part"
