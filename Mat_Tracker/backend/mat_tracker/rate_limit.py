"""Omejevanje zahtev / Global rate limiter.

slowapi omeji generiranje kod in upravljanje računov po IP.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)
