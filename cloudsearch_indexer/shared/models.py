from pydantic import BaseModel, ConfigDict


class IndexerBaseModel(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,  # accept host camelCase keys and snake_case
        arbitrary_types_allowed=True,
    )
