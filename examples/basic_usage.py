"""Basic usage example for bulkcache.

This example demonstrates how to:
- Create a coordinator backed by in-memory caches
- Declare bulk read-through, write-through and evict methods
- Observe which keys actually reach the backing store
"""

import logging
from dataclasses import dataclass
from typing import Collection, Dict, List

from bulkcache import BatchCacheCoordinator, CachingConfig, cache_config
from bulkcache.logging import configure_logging


@dataclass(frozen=True)
class User:
    id: int
    name: str


class UserStore:
    """Pretend database printing every bulk query it receives."""

    def __init__(self):
        self._rows = {i: User(i, f"user-{i}") for i in range(1, 6)}

    def load_many(self, ids):
        print(f"  store: loading {sorted(ids)}")
        return {i: self._rows[i] for i in ids if i in self._rows}

    def save_many(self, users):
        print(f"  store: saving {[u.id for u in users]}")
        for user in users:
            self._rows[user.id] = user
        return list(users)

    def delete_many(self, ids):
        print(f"  store: deleting {sorted(ids)}")
        for i in ids:
            self._rows.pop(i, None)


config = CachingConfig.from_yaml_string(
    """
bulkcache:
  cache_names: [users]
  dynamic_caches: false
"""
)
coordinator = BatchCacheCoordinator.from_config(config)


@cache_config(cache_names="users")
class UserRepository:
    def __init__(self, store: UserStore):
        self._store = store

    @coordinator.collection_cacheable()
    def find_by_ids(self, ids: Collection[int]) -> Dict[int, User]:
        return self._store.load_many(ids)

    @coordinator.collection_cache_put(key="result.id")
    def save_all(self, users: List[User]) -> List[User]:
        return self._store.save_many(users)

    @coordinator.collection_cache_evict()
    def delete_all(self, ids: Collection[int]) -> None:
        self._store.delete_many(ids)


def main():
    configure_logging(level=logging.DEBUG)
    repository = UserRepository(UserStore())

    print("First lookup, everything is loaded:")
    print(repository.find_by_ids([1, 2, 3]))

    print("\nSecond lookup, only 4 is loaded:")
    print(repository.find_by_ids([2, 3, 4]))

    print("\nSaving user 6 caches it:")
    repository.save_all([User(6, "newcomer")])
    print(repository.find_by_ids([6]))

    print("\nDeleting 1 and 2 evicts them first:")
    repository.delete_all([1, 2])
    print(repository.find_by_ids([1, 2, 3]))

    cache = coordinator.cache_manager.get_cache("users")
    print(f"\nCache stats: {cache.stats.to_dict()}")


if __name__ == "__main__":
    main()
