import logging
import uuid
from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, Field

from storefront.domain.models import User, Address, UserRole
from storefront.domain.exceptions import EmailAlreadyRegisteredError, UserNotFoundError

logger = logging.getLogger(__name__)


class RegisterUserDTO(BaseModel):
    fullname: str
    email: str
    phone: Optional[str] = None
    address: Address = Address()


class RegisterUserUseCase:
    """Creates the customer record. Passwords and sessions live upstream"""

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, dto: RegisterUserDTO, role: UserRole = UserRole.USER) -> User:
        email = dto.email.strip().lower()

        async with self._uow() as uow:
            if await uow.users.get_by_email(email):
                raise EmailAlreadyRegisteredError("Email already registered")

            user = User(
                id=str(uuid.uuid4()),
                fullname=dto.fullname.strip(),
                email=email,
                phone=dto.phone.strip() if dto.phone else None,
                role=role,
                address=dto.address,
                created_at=datetime.now(timezone.utc)
            )
            await uow.users.create(user)
            await uow.commit()

        logger.info(f"Registered user {user.id}")
        return user


class UpdateProfileDTO(BaseModel):
    """Fields left out keep their current value"""
    fullname: Optional[str] = Field(default=None, min_length=1)
    email: Optional[str] = Field(default=None, min_length=3)
    phone: Optional[str] = None
    address: Optional[Address] = None


class UpdateProfileUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str, dto: UpdateProfileDTO) -> User:
        async with self._uow() as uow:
            user = await uow.users.get_by_id(user_id)
            if not user:
                raise UserNotFoundError(f"User {user_id} not found")

            if dto.email is not None:
                email = dto.email.strip().lower()
                owner = await uow.users.get_by_email(email)
                if owner and owner.id != user_id:
                    raise EmailAlreadyRegisteredError("Email already registered")
                user.email = email
            if dto.fullname is not None:
                user.fullname = dto.fullname.strip()
            if "phone" in dto.model_fields_set:
                user.phone = dto.phone.strip() if dto.phone else None
            if dto.address is not None:
                user.address = dto.address

            await uow.users.update(user)
            await uow.commit()

        logger.info(f"Updated profile of user {user_id}")
        return user
