import enum

from fastapi_users.password import PasswordHelper


class Role(str, enum.Enum):
    ADMIN = "admin"
    USER = "user"


password_helper = PasswordHelper()


def hash_password(password: str) -> str:
    return password_helper.hash(password)


def verify_password(password: str, hashed_password: str) -> bool:
    verified, _ = password_helper.verify_and_update(password, hashed_password)
    return verified
