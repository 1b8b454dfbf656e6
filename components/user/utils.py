import string
import secrets

from components.core.security import create_access_token
from components.user import models


def generate_password(length: int = 12) -> str:
    """Function is generate a random password"""
    characters = string.ascii_letters + string.digits
    return "".join(secrets.choice(characters) for i in range(length))


def create_token_for_user(user: models.User) -> str:
    return create_access_token(data={"sub": str(user.id)})
