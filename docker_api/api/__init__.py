# flake8: noqa
from .client import APIClient
