from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from skedify.db.models import Provider
from skedify.scheduling import errors
from skedify.scheduling.lifecycle import EMAIL_PATTERN
from skedify.security.passwords import hash_password, verify_password


MIN_PASSWORD_LENGTH = 6


class RegisterProviderArgs(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    username: str = Field(min_length=1, max_length=64)
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=MIN_PASSWORD_LENGTH)
    first_name: str | None = None
    last_name: str | None = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        if not EMAIL_PATTERN.match(value):
            raise ValueError("Invalid email format.")
        return value.lower()


class LoginArgs(BaseModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


def parse_register_provider_args(raw_args: dict[str, Any]) -> RegisterProviderArgs:
    return RegisterProviderArgs.model_validate(raw_args)


def parse_login_args(raw_args: dict[str, Any]) -> LoginArgs:
    return LoginArgs.model_validate(raw_args)


def register_provider(db: Session, args: RegisterProviderArgs) -> Provider:
    if db.query(Provider).filter(Provider.email == args.email).first() is not None:
        raise errors.ValidationError("Email already exists.", error_code="EMAIL_ALREADY_EXISTS")
    if db.query(Provider).filter(Provider.username == args.username).first() is not None:
        raise errors.ValidationError("Username already exists.", error_code="USERNAME_ALREADY_EXISTS")

    provider = Provider(
        username=args.username,
        email=args.email,
        password_hash=hash_password(args.password),
        first_name=args.first_name,
        last_name=args.last_name,
    )
    db.add(provider)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if "email" in str(exc).lower():
            raise errors.ValidationError(
                "Email already exists.", error_code="EMAIL_ALREADY_EXISTS"
            ) from exc
        if "username" in str(exc).lower():
            raise errors.ValidationError(
                "Username already exists.", error_code="USERNAME_ALREADY_EXISTS"
            ) from exc
        raise
    return provider


def authenticate_provider(db: Session, args: LoginArgs) -> Provider:
    provider = db.query(Provider).filter(Provider.email == args.email.strip().lower()).first()
    if provider is None or not verify_password(args.password, provider.password_hash):
        raise errors.AuthenticationError("Invalid credentials.", error_code="INVALID_CREDENTIALS")
    return provider


def get_provider(db: Session, provider_id: int) -> Provider:
    provider = db.get(Provider, provider_id)
    if provider is None:
        raise errors.NotFoundError("Provider not found.", error_code="PROVIDER_NOT_FOUND")
    return provider


def serialize_provider(provider: Provider) -> dict[str, Any]:
    return {
        "id": provider.id,
        "username": provider.username,
        "email": provider.email,
        "first_name": provider.first_name,
        "last_name": provider.last_name,
    }
