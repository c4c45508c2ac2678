from enum import Enum


class Role(str, Enum):
    admin = "admin"
    user = "user"
    store_owner = "store_owner"
