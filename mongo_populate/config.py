import warnings
from typing import Any, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class SeederSettings(BaseSettings):
    """Connection and behaviour options for MongoPopulate.

    Values passed to the constructor win; anything left out is read from
    MONGO_POPULATE_* environment variables or a local .env file. Unrelated
    keys in a shared .env are ignored; MongoPopulate rejects unknown keyword
    options itself.
    """

    host: str = Field(..., min_length=1)  # MongoDB hostname, e.g. "localhost"
    port: int = Field(27017, gt=0, le=65535)
    dbname: str = Field(..., min_length=1)  # Database the collections are seeded into
    username: Optional[str] = None
    password: Optional[str] = None
    overwrite: bool = False  # Drop and recreate each collection before inserting
    verbose: bool = False  # Log every skipped duplicate at INFO instead of DEBUG
    max_concurrency: Optional[int] = Field(None, gt=0)  # Cap on in-flight inserts; None = unbounded
    server_selection_timeout_ms: Optional[int] = Field(None, gt=0)  # Passed straight to the driver

    model_config = {"env_prefix": "MONGO_POPULATE_", "env_file": ".env", "extra": "ignore"}

    def __init__(self, **values: Any):
        super().__init__(**values)
        # Credentials only go into the connection string when both are set.
        if bool(self.username) != bool(self.password):
            warnings.warn(
                "Only one of username/password is set; connecting without credentials.",
                stacklevel=2,
            )

    @property
    def has_credentials(self) -> bool:
        return bool(self.username and self.password)
