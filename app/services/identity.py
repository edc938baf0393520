"""Customer registration, credential checks and identifier assignment."""

from __future__ import annotations

import asyncio
import logging

from passlib.context import CryptContext
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings
from ..database import Database
from ..db_models import Customer
from ..errors import (
    DuplicateUsername,
    InvalidCredentials,
    StorageError,
    Unauthenticated,
    ValidationFailure,
)
from ..models import CustomerProfile, LoginForm, RegistrationForm
from ..utils import Today, highest_customer_id, next_customer_id, today_in
from .session import AuthContext, SessionGuard

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    """Return a salted one-way hash of ``password``."""

    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time check of ``password`` against a stored hash."""

    try:
        return pwd_context.verify(password, password_hash)
    except (TypeError, ValueError):
        # Unrecognised or corrupt hash in storage.
        return False


class CustomerIdentityService:
    """Registers customers and verifies their credentials."""

    def __init__(
        self,
        settings: Settings,
        database: Database,
        *,
        today: Today | None = None,
    ):
        self._settings = settings
        self._database = database
        self._today = today or today_in(settings.zone)

    async def register(
        self,
        *,
        username: str,
        password: str,
        password_confirmation: str,
        first_name: str,
        last_name: str,
        email: str,
        credit_card: str,
    ) -> CustomerProfile:
        """Create a customer and return its public profile.

        Registration does not log the customer in.
        """

        try:
            form = RegistrationForm(
                username=username,
                password=password,
                password_confirmation=password_confirmation,
                first_name=first_name,
                last_name=last_name,
                email=email,
                credit_card=credit_card,
            )
        except ValidationError as exc:
            raise ValidationFailure.from_validation_error(exc) from exc

        async with self._database.session() as session:
            if await self._username_taken(session, form.username):
                raise DuplicateUsername()

        password_hash = await asyncio.to_thread(hash_password, form.password)
        joined = self._today()

        attempts = self._settings.registration_retry_limit
        for attempt in range(1, attempts + 1):
            async with self._database.session() as session:
                identifiers = await session.scalars(select(Customer.customer_id))
                current_max = highest_customer_id(identifiers)
                customer_id = next_customer_id(
                    current_max,
                    prefix=self._settings.customer_id_prefix,
                    digits=self._settings.customer_id_digits,
                )
                customer = Customer(
                    customer_id=customer_id,
                    username=form.username,
                    password_hash=password_hash,
                    first_name=form.first_name,
                    last_name=form.last_name,
                    email=str(form.email),
                    credit_card=form.credit_card,
                    member_since=joined,
                    renewal_date=joined,
                )
                session.add(customer)
                try:
                    await session.commit()
                except IntegrityError:
                    await session.rollback()
                    if await self._username_taken(session, form.username):
                        raise DuplicateUsername() from None
                    logger.warning(
                        "Customer id %s taken concurrently (attempt %s/%s)",
                        customer_id,
                        attempt,
                        attempts,
                    )
                    continue

            logger.info("Registered customer %s as %s", form.username, customer_id)
            return _profile(customer)

        raise StorageError("Retry limit exceeded while allocating a customer id")

    async def login(
        self, guard: SessionGuard, username: str, password: str
    ) -> AuthContext:
        """Verify credentials and establish the session on success."""

        try:
            form = LoginForm(username=username, password=password)
        except ValidationError as exc:
            raise ValidationFailure.from_validation_error(exc) from exc

        async with self._database.session() as session:
            result = await session.execute(
                select(Customer.password_hash, Customer.customer_id).where(
                    Customer.username == form.username
                )
            )
            rows = result.all()

        if len(rows) != 1:
            # Keep the timing of unknown usernames close to a real check.
            await asyncio.to_thread(pwd_context.dummy_verify)
            logger.info("Rejected login for %s", form.username)
            raise InvalidCredentials()

        password_hash, customer_id = rows[0]
        verified = await asyncio.to_thread(verify_password, form.password, password_hash)
        if not verified:
            logger.info("Rejected login for %s", form.username)
            raise InvalidCredentials()

        return guard.establish(customer_id, form.username)

    def logout(self, guard: SessionGuard) -> None:
        guard.clear()

    async def get_profile(self, auth: AuthContext) -> CustomerProfile:
        if not auth.is_authenticated:
            raise Unauthenticated()
        async with self._database.session() as session:
            customer = await session.get(Customer, auth.customer_id)
        if customer is None:
            raise Unauthenticated()
        return _profile(customer)

    @staticmethod
    async def _username_taken(session: AsyncSession, username: str) -> bool:
        existing = await session.scalar(
            select(Customer.customer_id).where(Customer.username == username).limit(1)
        )
        return existing is not None


def _profile(customer: Customer) -> CustomerProfile:
    return CustomerProfile(
        customer_id=customer.customer_id,
        username=customer.username,
        first_name=customer.first_name,
        last_name=customer.last_name,
        email=customer.email,
        member_since=customer.member_since,
        renewal_date=customer.renewal_date,
    )
