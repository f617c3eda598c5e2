"""
schemas/training.py

- 교육센터 도메인(학생/코스/세션/등록/출석) 입력 스키마
- Airtable 필드명이 프랑스어이므로 alias로 매핑하고, 파이썬 이름으로도 입력 가능(populate_by_name)
- to_fields()는 Airtable에 그대로 보낼 수 있는 dict를 반환
"""

from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field

from utils.dates import is_valid_airtable_date

Niveau = Literal["Débutant", "Intermédiaire", "Avancé", "Expert"]
Modalite = Literal["Présentiel", "Distanciel", "Hybride"]
StatutInscription = Literal["Inscrit", "Terminé", "Annulé"]


class AirtableFieldsModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_fields(self, partial: bool = False) -> Dict[str, Any]:
        # partial=True: 수정 요청에서 실제로 보낸 필드만
        return self.model_dump(
            by_alias=True,
            exclude_none=True,
            exclude_unset=partial,
            mode="json",
        )


def _check_date(v: str) -> str:
    if not is_valid_airtable_date(v):
        raise ValueError("Date invalide (YYYY-MM-DD ou JJ/MM/AAAA)")
    return v


AirtableDate = Annotated[str, AfterValidator(_check_date)]


# ==========================================================
# 학생 (Étudiants)
# ==========================================================

class StudentCreate(AirtableFieldsModel):
    first_name: str = Field(..., alias="Prénom", min_length=2)
    last_name: str = Field(..., alias="Nom", min_length=2)
    email: EmailStr = Field(..., alias="Email")
    phone: Optional[str] = Field(None, alias="Téléphone")
    address: Optional[str] = Field(None, alias="Adresse")
    notes: Optional[str] = Field(None, alias="Notes")


class StudentUpdate(AirtableFieldsModel):
    first_name: Optional[str] = Field(None, alias="Prénom", min_length=2)
    last_name: Optional[str] = Field(None, alias="Nom", min_length=2)
    email: Optional[EmailStr] = Field(None, alias="Email")
    phone: Optional[str] = Field(None, alias="Téléphone")
    address: Optional[str] = Field(None, alias="Adresse")
    notes: Optional[str] = Field(None, alias="Notes")


# ==========================================================
# 코스 (Cours)
# ==========================================================

class CourseCreate(AirtableFieldsModel):
    name: Optional[str] = Field(None, alias="Nom du cours")
    subject: str = Field(..., alias="Sujet", min_length=1)
    level: Optional[Niveau] = Field(None, alias="Niveau")
    start_date: AirtableDate = Field(..., alias="Date de début")
    duration_days: int = Field(..., alias="Durée (jours)", gt=0)
    trainer: Optional[str] = Field(None, alias="Formateur")
    objectives: Optional[str] = Field(None, alias="Objectifs pédagogiques")
    prerequisites: Optional[str] = Field(None, alias="Prérequis")
    program: Optional[str] = Field(None, alias="Programme")
    modality: Modalite = Field(..., alias="Modalité")


class CourseUpdate(AirtableFieldsModel):
    name: Optional[str] = Field(None, alias="Nom du cours")
    subject: Optional[str] = Field(None, alias="Sujet", min_length=1)
    level: Optional[Niveau] = Field(None, alias="Niveau")
    start_date: Optional[AirtableDate] = Field(None, alias="Date de début")
    duration_days: Optional[int] = Field(None, alias="Durée (jours)", gt=0)
    trainer: Optional[str] = Field(None, alias="Formateur")
    objectives: Optional[str] = Field(None, alias="Objectifs pédagogiques")
    prerequisites: Optional[str] = Field(None, alias="Prérequis")
    program: Optional[str] = Field(None, alias="Programme")
    modality: Optional[Modalite] = Field(None, alias="Modalité")


# ==========================================================
# 세션 (Sessions)
# ==========================================================

class SessionCreate(AirtableFieldsModel):
    name: str = Field(..., alias="Nom de la session", min_length=3)
    date: AirtableDate = Field(..., alias="Date de la session")
    course: Optional[List[str]] = Field(None, alias="Cours")


class SessionUpdate(AirtableFieldsModel):
    name: Optional[str] = Field(None, alias="Nom de la session", min_length=3)
    date: Optional[AirtableDate] = Field(None, alias="Date de la session")
    course: Optional[List[str]] = Field(None, alias="Cours")


# ==========================================================
# 등록 (Inscriptions)
# ==========================================================

class EnrollmentCreate(AirtableFieldsModel):
    student: List[str] = Field(..., alias="Étudiant", min_length=1)
    course: List[str] = Field(..., alias="Cours", min_length=1)
    enrolled_on: Optional[AirtableDate] = Field(None, alias="Date d'inscription")
    status: Optional[StatutInscription] = Field(None, alias="Statut")


class EnrollmentUpdate(AirtableFieldsModel):
    student: Optional[List[str]] = Field(None, alias="Étudiant", min_length=1)
    course: Optional[List[str]] = Field(None, alias="Cours", min_length=1)
    enrolled_on: Optional[AirtableDate] = Field(None, alias="Date d'inscription")
    status: Optional[StatutInscription] = Field(None, alias="Statut")


# ==========================================================
# 출석 (Présences)
# ==========================================================

class AttendanceCreate(AirtableFieldsModel):
    session: List[str] = Field(..., alias="Session", min_length=1)
    student: List[str] = Field(..., alias="Étudiant", min_length=1)
    present: bool = Field(True, alias="Présent ?")
    signature: Optional[bool] = Field(None, alias="Signature")
    timestamp: Optional[AirtableDate] = Field(None, alias="Horodatage")


class AttendanceUpdate(AirtableFieldsModel):
    present: Optional[bool] = Field(None, alias="Présent ?")
    signature: Optional[bool] = Field(None, alias="Signature")
    timestamp: Optional[AirtableDate] = Field(None, alias="Horodatage")


# ✅ 공개 서명 폼: 캔버스 서명(base64) 필수
class SignOffRequest(BaseModel):
    signature: str = Field(..., min_length=1)
