from __future__ import annotations

from rest2firestore.settings import load_settings


def main() -> int:
    settings = load_settings()
    print("rest2firestore configuration")
    print(
        "config: "
        f"app_env={settings.app_env}, "
        f"firestore_project_id={settings.firestore_project_id or '(unset)'}, "
        f"firestore_database={settings.firestore_database}, "
        f"log_level={settings.log_level}, "
        f"ignore_invalid_delete_path={settings.ignore_invalid_delete_path}"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
