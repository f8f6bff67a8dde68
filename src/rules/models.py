from pydantic import BaseModel, Field, field_validator


class SerializerRules(BaseModel):
    strip_data_attributes: bool = True
    preserve_class_names: list[str] = Field(default_factory=lambda: ["slate-"])

    @field_validator("preserve_class_names")
    @classmethod
    def no_empty_prefixes(cls, value: list[str]) -> list[str]:
        if any(not prefix for prefix in value):
            raise ValueError("class name prefixes must be non-empty")
        return value

class AutoformatRules(BaseModel):
    # "#" becomes h{1 + heading_level_offset}
    heading_level_offset: int = Field(default=0, ge=0, le=5)

class LinkRules(BaseModel):
    forbidden_protocols: list[str] = Field(default_factory=lambda: ["javascript:", "data:"])
    rel: list[str] = Field(default_factory=lambda: ["noopener", "noreferrer"])

class UploadRules(BaseModel):
    endpoint: str = "/api/upload"
    timeout_seconds: float = Field(default=30.0, gt=0)

class LimitsRules(BaseModel):
    max_json_bytes: int = Field(default=400_000, gt=0)
    max_depth: int = Field(default=12, gt=0, le=200)

class EditorRules(BaseModel):
    serializer: SerializerRules = Field(default_factory=SerializerRules)
    autoformat: AutoformatRules = Field(default_factory=AutoformatRules)
    links: LinkRules = Field(default_factory=LinkRules)
    uploads: UploadRules = Field(default_factory=UploadRules)
    limits: LimitsRules = Field(default_factory=LimitsRules)
