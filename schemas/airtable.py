from pydantic import BaseModel, ConfigDict
from typing import Any, Dict, List, Optional


# ✅ POST: fields(단건) 또는 records(배치, 최대 10건)
class RecordCreateRequest(BaseModel):
    tableName: Optional[str] = None
    fields: Optional[Dict[str, Any]] = None
    records: Optional[List[Dict[str, Any]]] = None

    model_config = ConfigDict(extra="ignore")


# ✅ PUT/PATCH: 부분 수정
class RecordUpdateRequest(BaseModel):
    tableName: Optional[str] = None
    recordId: Optional[str] = None
    fields: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(extra="ignore")


# ✅ DELETE: recordId(단건) 또는 recordIds(배치, 최대 10건)
class RecordDeleteRequest(BaseModel):
    tableName: Optional[str] = None
    recordId: Optional[str] = None
    recordIds: Optional[List[str]] = None

    model_config = ConfigDict(extra="ignore")


class FieldMetadata(BaseModel):
    id: Optional[str] = None
    name: str
    type: Optional[str] = None
    options: Optional[Dict[str, Any]] = None


class TableMetadata(BaseModel):
    id: Optional[str] = None
    name: str
    fields: List[FieldMetadata]


class MetadataResponse(BaseModel):
    table: TableMetadata
