from pydantic import BaseModel, ConfigDict


class LegacyPackage(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    url: str
    repo: str


class HealthResponse(BaseModel):
    status: str
    providers: list[str]
    legacy_packages: int
