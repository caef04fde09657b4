from sharehub.models.user import User
from sharehub.models.resource import Resource

__all__ = ["User", "Resource"]
