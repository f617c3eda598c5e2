from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from config.settings import settings
from schemas.airtable import MetadataResponse, RecordCreateRequest, RecordDeleteRequest, RecordUpdateRequest
from schemas.common import ERROR_RESPONSES, DeleteResponse
from services.airtable_client import MAX_BATCH_SIZE, AirtableClient, get_airtable_client

router = APIRouter(prefix="/airtable", tags=["Airtable Proxy"])

# ==========================================================
# [PROXY] 클라이언트 → Airtable 범용 CRUD 프록시
# - tableName(+ recordId)로 대상 지정, API 키는 서버에만 존재
# - 에러: 400(검증) / 500(설정 누락·네트워크) / 그 외 업스트림 상태 코드 그대로
# ==========================================================


def resolve_table(table_name: Optional[str]) -> str:
    table = table_name or settings.AIRTABLE_TABLE_NAME
    if not table:
        raise HTTPException(status_code=400, detail="Le paramètre tableName est requis")
    return table


def parse_sort(sort: Optional[str]) -> Optional[List[Dict[str, str]]]:
    """"Nom,-Date de début" → [{field: Nom, asc}, {field: Date de début, desc}]"""
    if not sort:
        return None
    rules = []
    for part in sort.split(","):
        part = part.strip()
        if not part:
            continue
        if part.startswith("-"):
            rules.append({"field": part[1:].strip(), "direction": "desc"})
        else:
            rules.append({"field": part, "direction": "asc"})
    return rules or None


def _unwrap_fields(item: Dict[str, Any]) -> Dict[str, Any]:
    # {"fields": {...}} 형태로 보내도 허용
    if set(item.keys()) == {"fields"} and isinstance(item["fields"], dict):
        return item["fields"]
    return item


# ✅ [READ] 목록 조회 또는 recordId 단건 조회
@router.get("", responses=ERROR_RESPONSES)
def read_records(
    tableName: Optional[str] = Query(None, description="Airtable 테이블명"),
    recordId: Optional[str] = Query(None, description="단건 조회할 레코드 ID"),
    view: Optional[str] = None,
    filterByFormula: Optional[str] = None,
    maxRecords: Optional[int] = Query(None, ge=1),
    fields: Optional[str] = Query(None, description="콤마(,)로 구분된 반환 필드"),
    sort: Optional[str] = Query(None, description='정렬 (예: "Nom,-Date de début")'),
    client: AirtableClient = Depends(get_airtable_client),
):
    table = resolve_table(tableName)

    if recordId:
        return {"record": client.get_record(table, recordId)}

    projection = [f.strip() for f in fields.split(",") if f.strip()] if fields else None
    records = client.list_records(
        table,
        view=view or None,
        filter_by_formula=filterByFormula or None,
        max_records=maxRecords,
        fields=projection,
        sort=parse_sort(sort),
    )
    return {"records": records, "count": len(records)}


# ✅ [CREATE] 단건(fields) 또는 배치(records, 최대 10건)
@router.post("", responses=ERROR_RESPONSES)
def create_records(req: RecordCreateRequest, client: AirtableClient = Depends(get_airtable_client)):
    table = resolve_table(req.tableName)

    if req.records is not None:
        if len(req.records) == 0:
            raise HTTPException(status_code=400, detail="Le tableau records ne peut pas être vide")
        if len(req.records) > MAX_BATCH_SIZE:
            raise HTTPException(status_code=400, detail=f"Maximum {MAX_BATCH_SIZE} records par requête")

        created = client.create_records(table, [_unwrap_fields(r) for r in req.records])
        return {
            "records": created,
            "count": len(created),
            "message": f"{len(created)} record(s) créé(s) avec succès",
        }

    if not req.fields:
        raise HTTPException(status_code=400, detail="Le paramètre fields est requis et ne peut pas être vide")

    record = client.create_record(table, req.fields)
    return {"record": record, "message": "Record créé avec succès"}


# ✅ [UPDATE] 부분 수정 (PUT/PATCH 동일, 전달한 필드만 변경)
@router.put("", responses=ERROR_RESPONSES)
@router.patch("", responses=ERROR_RESPONSES)
def update_record(req: RecordUpdateRequest, client: AirtableClient = Depends(get_airtable_client)):
    table = resolve_table(req.tableName)

    if not req.recordId:
        raise HTTPException(status_code=400, detail="Le paramètre recordId est requis")
    if not req.fields:
        raise HTTPException(status_code=400, detail="Le paramètre fields est requis et ne peut pas être vide")

    record = client.update_record(table, req.recordId, req.fields)
    return {"record": record, "message": "Record mis à jour avec succès"}


# ✅ [DELETE] 단건(recordId) 또는 배치(recordIds, 최대 10건) - 복구 불가
@router.delete("", response_model=DeleteResponse, response_model_exclude_none=True, responses=ERROR_RESPONSES)
def delete_records(req: RecordDeleteRequest, client: AirtableClient = Depends(get_airtable_client)):
    table = resolve_table(req.tableName)

    if req.recordIds is not None:
        if len(req.recordIds) == 0:
            raise HTTPException(status_code=400, detail="Le tableau recordIds ne peut pas être vide")
        if len(req.recordIds) > MAX_BATCH_SIZE:
            raise HTTPException(status_code=400, detail=f"Maximum {MAX_BATCH_SIZE} records par requête")

        client.delete_records(table, req.recordIds)
        return {
            "success": True,
            "count": len(req.recordIds),
            "message": f"{len(req.recordIds)} record(s) supprimé(s) avec succès",
        }

    if not req.recordId:
        raise HTTPException(status_code=400, detail="Le paramètre recordId ou recordIds est requis")

    client.delete_record(table, req.recordId)
    return {"success": True, "message": "Record supprimé avec succès"}


# ✅ [META] 테이블 필드 구조 (Single Select 옵션 포함)
@router.get("/metadata", response_model=MetadataResponse, responses=ERROR_RESPONSES)
def read_table_metadata(
    tableName: Optional[str] = Query(None),
    client: AirtableClient = Depends(get_airtable_client),
):
    if not tableName:
        raise HTTPException(status_code=400, detail="Le paramètre tableName est requis")
    return {"table": client.get_table_metadata(tableName)}
