from pydantic import BaseModel, Field


class DeduplicationOptions(BaseModel):
    group_by_rule_id: bool = True
    group_by_similar_message: bool = True

    similarity_threshold: float = Field(0.85, ge=0.0, le=1.0)
