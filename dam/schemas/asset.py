from datetime import datetime
from pydantic import BaseModel, ConfigDict


class AssetData(BaseModel):
    model_config = ConfigDict(extra='ignore')
    id: str
    title: str
    description: str = ""
    file_path: str
    file_type: str
    file_size: int
    owner_id: str
    tags: list[str] = []
    status: str
    thumbnail_url: str | None = None
    created_at: datetime
