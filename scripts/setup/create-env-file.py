#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""로컬 개발용 .env 파일 생성"""
import os
from pathlib import Path

# 프로젝트 루트
project_root = Path(__file__).parent.parent.parent
env_file = project_root / ".env"

env_content = """# Environment
# 로컬 개발 시 development로 두면 상세 에러 메시지 확인 가능
ENVIRONMENT=development

# CORS
ALLOWED_ORIGINS=http://localhost:5173

# 기기 로컬 저장소 (SQLite)
LOCAL_DATABASE_URL=sqlite+aiosqlite:///./quiz_room.db

# 공유 원격 저장소 (비워두면 로컬 저장소만 사용)
# 실제 값은 서버 담당자로부터 받아서 수동으로 입력 필요
REMOTE_STORE_URL=
REMOTE_STORE_AUTH=
REMOTE_STORE_TIMEOUT=5.0

# 공유 링크 기본 주소 ({PUBLIC_BASE_URL}/?quiz=123456)
PUBLIC_BASE_URL=http://localhost:5173

TIMER_TICK_SECONDS=1.0
SESSION_TTL_SECONDS=3600
"""


def create_env_file():
    """.env 파일 생성 (UTF-8, BOM 없음)"""
    print(f"[INFO] .env 파일 생성 중: {env_file}")

    # 기존 파일이 있으면 백업
    if env_file.exists():
        backup_file = project_root / ".env.backup"
        print(f"[INFO] 기존 .env 파일 백업: {backup_file}")
        backup_file.write_text(env_file.read_text(encoding="utf-8"), encoding="utf-8", newline="\n")

    # .env 파일 생성 (UTF-8, BOM 없음, LF 줄바꿈)
    with open(env_file, "w", encoding="utf-8", newline="\n") as f:
        f.write(env_content)

    print("[OK] .env 파일 생성 완료")

    # 파일 권한 확인 (Windows에서는 chmod가 없으므로 스킵)
    if os.name != "nt":
        os.chmod(env_file, 0o600)
        print("[INFO] 파일 권한 설정: 600")


if __name__ == "__main__":
    try:
        create_env_file()
        print("\n[OK] 작업 완료")
    except Exception as e:
        print(f"\n[ERROR] 에러 발생: {e.__class__.__name__}: {str(e)}")
        import traceback
        traceback.print_exc()
        exit(1)
