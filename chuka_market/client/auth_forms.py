import logging
from abc import ABC, abstractmethod

import httpx
from pydantic import BaseModel, EmailStr, ValidationError

from chuka_market.client.api_client import MarketAPIError, MarketClient

logger = logging.getLogger(__name__)

# The /api/login and /api/register handlers live outside this service; these
# forms only assume "POST JSON, get {"error": ...} back on failure".


class LoginCredentials(BaseModel):
    email: EmailStr
    password: str


class RegisterDetails(BaseModel):
    name: str
    email: EmailStr
    phone_number: str
    password: str


class _CredentialsForm(ABC):
    schema: type[BaseModel]
    success_message: str
    failure_message: str

    def __init__(self, client: MarketClient) -> None:
        self.client = client
        self.fields = {name: "" for name in self.schema.model_fields}
        self.message = ""

    def set_field(self, name: str, value: str) -> None:
        if name not in self.fields:
            raise KeyError(name)
        self.fields[name] = value

    @abstractmethod
    async def send(self, payload: dict) -> dict:
        """Posts the validated payload to the auth endpoint."""

    async def submit(self) -> bool:
        try:
            payload = self.schema.model_validate(self.fields).model_dump(mode="json")
        except ValidationError as e:
            fields = ", ".join(str(err["loc"][0]) for err in e.errors())
            self.message = f"Please check: {fields}"
            return False

        try:
            await self.send(payload)
        except MarketAPIError as e:
            self.message = e.message or self.failure_message
            return False
        except httpx.HTTPError as e:
            logger.error("Auth request failed: %s", e)
            self.message = self.failure_message
            return False

        self.message = self.success_message
        return True


class LoginForm(_CredentialsForm):
    schema = LoginCredentials
    success_message = "Login successful!"
    failure_message = "Login failed."

    async def send(self, payload: dict) -> dict:
        return await self.client.login(payload)


class RegisterForm(_CredentialsForm):
    schema = RegisterDetails
    success_message = "Registration successful!"
    failure_message = "Registration failed."

    async def send(self, payload: dict) -> dict:
        return await self.client.register(payload)
