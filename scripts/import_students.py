import csv
import sys

from config.settings import settings
from schemas.training import StudentCreate
from services.airtable_client import MAX_BATCH_SIZE, AirtableClient

CSV_PATH = "data/students.csv"  # ✅ 파일 경로 (헤더: Prénom,Nom,Email,Téléphone,Adresse)


def read_students(path):
    with open(path, newline="", encoding="utf-8-sig") as csvfile:
        reader = csv.DictReader(csvfile)
        for row in reader:
            # 빈 칸은 제외하고 스키마 검증
            yield StudentCreate(**{k: v.strip() for k, v in row.items() if v and v.strip()}).to_fields()


def migrate_students(path=CSV_PATH):
    client = AirtableClient(
        api_key=settings.AIRTABLE_API_KEY,
        base_id=settings.AIRTABLE_BASE_ID,
        api_url=settings.AIRTABLE_API_URL,
        timeout=settings.AIRTABLE_TIMEOUT,
    )

    students = list(read_students(path))
    created = 0
    # Airtable 배치 제한(10건)에 맞춰 나눠서 생성
    for i in range(0, len(students), MAX_BATCH_SIZE):
        created += len(client.create_records(settings.AIRTABLE_TABLE_ETUDIANTS, students[i:i + MAX_BATCH_SIZE]))

    print(f"✅ 학생 정보 CSV → Airtable 마이그레이션 완료 ({created}건)")


if __name__ == "__main__":
    migrate_students(sys.argv[1] if len(sys.argv) > 1 else CSV_PATH)
