from passlib.context import CryptContext

from logbook.config import get_settings
from logbook.models import User

pwd = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=get_settings().bcrypt_rounds,
)


def hash_password(p):
    return pwd.hash(p)


def verify_password(p, hashed):
    return pwd.verify(p, hashed)


def authenticate(db, email, password):
    """Return the user for these credentials, or None."""
    user = db.query(User).filter(User.email == email.lower()).first()
    if user is None or not verify_password(password, user.hashed_password):
        return None
    return user
