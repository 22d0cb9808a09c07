from .models import Family, Upstream
from .pool import PoolSnapshot, ReadWriteLock, UpstreamPool
from .source import ConfiguredUpstreams, load_upstreams, parse_upstreams

__all__ = [
    "Family",
    "Upstream",
    "PoolSnapshot",
    "ReadWriteLock",
    "UpstreamPool",
    "ConfiguredUpstreams",
    "load_upstreams",
    "parse_upstreams",
]
