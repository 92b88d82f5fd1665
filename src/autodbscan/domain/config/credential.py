"""
Credential domain model.

Used both for the Windows identity (directory bind, WinRM) and for the SQL
login attempted during connect validation.
"""

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator


class Credential(BaseModel):
    """
    Domain model for a username/password pair.

    The password never appears in ``repr`` or JSON output.
    """

    model_config = ConfigDict(
        json_encoders={
            SecretStr: lambda v: "***"  # Mask password in JSON output
        }
    )

    username: str = Field(..., description="User name, optionally DOMAIN\\user or user@domain")
    password: SecretStr = Field(..., description="Password")

    @field_validator('username')
    @classmethod
    def validate_username(cls, v: str) -> str:
        """Validate username is not empty."""
        if not v or not v.strip():
            raise ValueError("Username cannot be empty")
        return v.strip()

    def get_password(self) -> str:
        """Get the plain text password."""
        return self.password.get_secret_value()  # pylint: disable=no-member
