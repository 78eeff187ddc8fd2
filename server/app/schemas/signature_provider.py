from pydantic import Field

from app.schemas.common import Audited, ORMModel


class SignatureProviderBase(ORMModel):
    name: str = Field(min_length=1, max_length=120)
    description: str | None = None
    provider_code: str = Field(min_length=1, max_length=64)
    is_active: bool = True
    tenant_id: str | None = Field(default=None, max_length=64)


class SignatureProviderCreate(SignatureProviderBase):
    pass


class SignatureProviderUpdate(SignatureProviderBase):
    version: int | None = Field(default=None, ge=1)


class SignatureProviderRead(SignatureProviderBase, Audited):
    id: str
    is_default: bool
    version: int


class RegisteredProviders(ORMModel):
    providers: list[str]
    default_provider: str | None
