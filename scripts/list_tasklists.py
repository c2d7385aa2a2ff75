"""Утилита для получения списков задач Google Tasks пользователя Todoist."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Iterable, Tuple

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from todoist_gtasks_sync.clients import GoogleOAuthClient, GoogleTasksClient
from todoist_gtasks_sync.config import AppConfig
from todoist_gtasks_sync.services.credentials import CredentialProvider
from todoist_gtasks_sync.services.kv_store import SQLiteKeyValueStore


def _format_table(title: str, rows: Iterable[Tuple[str, str]]) -> str:
    rows = list(rows)
    if not rows:
        return f"{title}: нет данных"
    id_width = max(len(r[0]) for r in rows)
    name_width = max(len(r[1]) for r in rows)
    header = (
        f"{title}:\n"
        f"  {'ID'.ljust(id_width)}  |  {'Title'.ljust(name_width)}\n"
        f"  {'-' * id_width}--+-{'-' * name_width}"
    )
    body = "\n".join(f"  {list_id.ljust(id_width)}  |  {name}" for list_id, name in rows)
    return f"{header}\n{body}"


def collect_tasklists(client: GoogleTasksClient) -> list[Tuple[str, str]]:
    return [(str(item.get("id") or ""), str(item.get("title") or "")) for item in client.list_tasklists()]


def main() -> None:
    parser = argparse.ArgumentParser(description="Выводит списки задач Google пользователя Todoist")
    parser.add_argument("user_id", help="Идентификатор пользователя Todoist")
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("config.yaml"),
        help="Путь к YAML конфигурации",
    )
    args = parser.parse_args()

    config = AppConfig.load(args.config)
    store = SQLiteKeyValueStore(config.state_db)
    try:
        credential = CredentialProvider(store, GoogleOAuthClient(config.google_oauth)).resolve(args.user_id)
        if credential is None:
            print(f"Пользователь {args.user_id} не авторизован", file=sys.stderr)
            sys.exit(1)
        client = GoogleTasksClient(config.default_list_id(), credential, base_url=config.google_tasks.base_url)
        print(_format_table("Google task lists", collect_tasklists(client)))
    finally:
        store.close()


if __name__ == "__main__":
    main()
