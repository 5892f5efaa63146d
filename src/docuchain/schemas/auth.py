"""Authentication-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

OTC_PATTERN = r"^\d{6}$"


class NonceRequest(BaseModel):
    """Request a sign-in challenge for a wallet."""

    address: str = Field(..., description="0x-prefixed Ethereum address")


class NonceResponse(BaseModel):
    """Challenge the wallet must sign with personal_sign."""

    nonce: str = Field(..., description="Message to sign, single use")


class VerifySignatureRequest(BaseModel):
    """Signed challenge submitted to complete sign-in."""

    address: str = Field(..., description="0x-prefixed Ethereum address")
    signature: str = Field(..., description="Hex-encoded 65-byte EIP-191 signature")
    nonce: str = Field(..., description="The exact challenge that was signed")
    source_address: str | None = Field(
        None, description="Client network address recorded in login history"
    )


class TokenPairResponse(BaseModel):
    """Access and refresh tokens issued after a successful sign-in."""

    access_token: str = Field(..., description="Short-lived JWT for API calls")
    refresh_token: str = Field(..., description="Long-lived JWT for minting access tokens")
    token_type: str = Field("bearer", description="Token type (always 'bearer')")


class RefreshTokenRequest(BaseModel):
    refresh_token: str = Field(..., description="Refresh token from a previous sign-in")


class AccessTokenResponse(BaseModel):
    access_token: str = Field(..., description="Freshly minted access token")
    token_type: str = Field("bearer", description="Token type (always 'bearer')")


class IdentityResponse(BaseModel):
    """Public view of the authenticated identity."""

    address: str
    display_name: str | None = None
    email_verified: bool = False
    roles: list[str] = Field(default_factory=list)
    status: str
    last_login: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class EmailCodeRequest(BaseModel):
    email: str = Field(..., description="Address that should receive the code")


class EmailCodeVerifyRequest(BaseModel):
    email: str = Field(..., description="Address the code was sent to")
    code: str = Field(..., pattern=OTC_PATTERN, description="Six-digit code")


class CodeSentResponse(BaseModel):
    sent: bool = Field(..., description="True when the transport accepted the message")


class EmailVerifiedResponse(BaseModel):
    verified: bool = Field(..., description="True if the code was accepted")


class SignupRequest(BaseModel):
    """Register a wallet, proving control of an email address."""

    address: str = Field(..., description="0x-prefixed Ethereum address")
    email: str = Field(..., description="Email address the code was sent to")
    code: str = Field(..., pattern=OTC_PATTERN, description="Six-digit email code")
    display_name: str | None = Field(None, max_length=50, description="Optional display name")
    photo_base64: str | None = Field(
        None, description="Optional profile photo, standard base64, stored in the content store"
    )


class SignupResponse(BaseModel):
    address: str = Field(..., description="Canonical lowercase address")
    photo_cid: str | None = Field(None, description="Content identifier of the stored photo")


class EmailChangeRequest(BaseModel):
    """Move the authenticated identity to a new, proven email address."""

    email: str = Field(..., description="New address; a code must have been sent to it")
    code: str = Field(..., pattern=OTC_PATTERN, description="Six-digit code mailed to `email`")
