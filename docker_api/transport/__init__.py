# flake8: noqa
from .unixconn import UnixHTTPAdapter
