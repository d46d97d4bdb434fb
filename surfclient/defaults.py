"""Default settings for connections, timeouts and client behaviour."""

# User-Agent sent when none is configured.
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)

# Maximum number of redirects to follow.
MAX_REDIRECTS = 10

# Maximum number of concurrent workers for parallel requests.
MAX_WORKERS = 10

# Timeout, in seconds, for establishing a connection.
DIALER_TIMEOUT = 30.0

# Overall timeout, in seconds, for a complete request.
CLIENT_TIMEOUT = 30.0

# TCP keep-alive interval, in seconds.
TCP_KEEP_ALIVE = 15.0

# Seconds an idle pooled connection is kept open.
IDLE_CONN_TIMEOUT = 20.0

# Maximum number of idle connections across all hosts.
MAX_IDLE_CONNS = 512

# Maximum number of connections per host.
MAX_CONNS_PER_HOST = 128

# Maximum number of idle connections per host.
MAX_IDLE_CONNS_PER_HOST = 128