from pydantic import BaseModel, ConfigDict, Field

from identity_seed.components.superuser.models import DEFAULT_SUPER_USER_PARTICIPANT_ID


class SuperUserRules(BaseModel):
    model_config = ConfigDict(frozen=True, hide_input_in_errors=True)

    participant_id: str = Field(default=DEFAULT_SUPER_USER_PARTICIPANT_ID, min_length=1)
    api_key: str | None = Field(default=None, repr=False)


class SubsystemRules(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(pattern=r"^[a-z][a-z0-9_]*$")
    enabled: bool = True
    url: str | None = None  # defaults to the shared database
    user: str | None = None


class MigrationRules(BaseModel):
    model_config = ConfigDict(frozen=True)

    scripts_dir: str = "migrations"
    subsystems: list[SubsystemRules] = Field(default_factory=list)


class DatasourceRules(BaseModel):
    model_config = ConfigDict(frozen=True)

    data_dir: str = "./data"
    db_filename: str = "identity.db"


class Rules(BaseModel):
    model_config = ConfigDict(frozen=True, hide_input_in_errors=True)

    superuser: SuperUserRules = Field(default_factory=SuperUserRules)
    migrations: MigrationRules = Field(default_factory=MigrationRules)
    datasource: DatasourceRules = Field(default_factory=DatasourceRules)
