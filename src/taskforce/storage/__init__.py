"""
Storage backends for ticket persistence.

Exports:
    TicketStorage: Protocol every backend implements
    GitHubStorage: Tickets as files on a GitHub repository branch
    RedisStorage: Tickets as Redis records
    LocalStorage: Tickets as JSON files on local disk
"""

from taskforce.storage.github import GitHubStorage
from taskforce.storage.kv import RedisStorage
from taskforce.storage.local import LocalStorage
from taskforce.storage.protocol import TicketStorage

__all__ = ["GitHubStorage", "LocalStorage", "RedisStorage", "TicketStorage"]
