import logging
from passlib.context import CryptContext

from library_api.schemas.records import Member
from library_api.services.circulation import new_id
from library_api.store.base import InventoryStore
from library_api.utils.timezone import today

logger = logging.getLogger(__name__)

# Password hashing context - pbkdf2 needs no native backend
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


class MemberService:
    def __init__(self, store: InventoryStore):
        self.store = store

    def register(self, name: str, email: str, password: str) -> Member:
        member = Member(
            user_id=new_id("U"),
            name=name,
            email=email,
            password_hash=get_password_hash(password),
            role="member",
            membership_date=today(),
        )
        with self.store.session() as db:
            db.add(member)
        logger.info(f"Registered member {member.user_id}")
        return member
