"""
File delivery channel
"""
import json
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path

from core.entities import Destination, NewsMessage
from delivery.base import DeliveryChannel


class FileDelivery(DeliveryChannel):
    """Appends one JSON line per message to <output_dir>/<scope>_<destination>.jsonl."""

    name = "file"

    def __init__(self, output_dir: str = "output"):
        self.output_dir = Path(output_dir)

    def path_for(self, destination: Destination) -> Path:
        label = destination.address or destination.destination_id
        safe = "".join(c if c.isalnum() or c in "-_" else "_" for c in f"{destination.owner_scope}_{label}")
        return self.output_dir / f"{safe}.jsonl"

    async def deliver(
        self,
        *,
        destination: Destination,
        message: NewsMessage,
    ) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        record = asdict(message)
        record["delivered_at"] = datetime.now(timezone.utc).isoformat()

        with self.path_for(destination).open("a", encoding="utf-8") as fh:
            fh.write(json.dumps(record, ensure_ascii=False) + "\n")
