from pydantic import BaseModel, ConfigDict


class RestModRelease(BaseModel):
    modversion: str | None = None
    mainfile: str | None = None
    filename: str | None = None
    tags: list[str] = []


class RestModEntry(BaseModel):
    name: str | None = None
    modid: int | str | None = None
    urlalias: str | None = None
    releases: list[RestModRelease] = []


class RestMod(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    mod: RestModEntry | None = None
    statuscode: str


class RestModSummary(BaseModel):
    modidstrs: list[str | None] = []
    name: str | None = None
    lastreleased: str | None = None


class RestModList(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    statuscode: str | None = None
    mods: list[RestModSummary] = []
