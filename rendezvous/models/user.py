"""Customer profile definitions."""

from sqlalchemy import Column, String
from rendezvous.database import Base

ROLE_CUSTOMER = "customer"
ROLE_ADMIN = "admin"


class Profile(Base):
    """Represents a storefront account, keyed by the identity provider's user id."""
    __tablename__ = "profiles"

    id = Column(String, primary_key=True)
    email = Column(String, unique=True, index=True)
    full_name = Column(String)
    role = Column(String, default=ROLE_CUSTOMER)  # customer/admin
