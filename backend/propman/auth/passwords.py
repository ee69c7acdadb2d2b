"""bcrypt password hashing for login and for walk-in renter accounts.

Walk-in renters created by ``RenterResolver`` get
``settings.renter_default_password`` hashed here; ``/auth/login`` checks
submitted passwords with ``verify_password``.
"""

import bcrypt


def hash_password(password: str) -> str:
    """Return a salted bcrypt hash suitable for ``User.hashed_password``."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
