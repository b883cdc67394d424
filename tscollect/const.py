"""This file contains the defaults used by the collectors."""

# Default collection interval in seconds, matches the usual
# OpenTSDB resolution of the agents feeding it.
DEFAULT_INTERVAL = 15
# Upper bound for reading the stats of a local service.
DEFAULT_TIMEOUT = 10

DEFAULT_MEMCACHED_ADDRESS = "127.0.0.1:11211"
MEMCACHED_TOOL = "memcached-tool"

# Keep the last bytes of stderr for error messages of failed commands.
STDERR_TAIL_SIZE = 512
