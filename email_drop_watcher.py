#!/usr/bin/env python3
"""
Email Drop Folder Watcher - Webhook Feeder

Watches a folder for saved .eml messages and submits each one to the email
webhook, the same way a mail provider would. Useful for local end-to-end
runs without a real inbound mail integration.

Usage:
    python email_drop_watcher.py --watch-folder ./emails-incoming
"""

import argparse
import json
import time
from datetime import datetime, UTC
from email import policy
from email.parser import BytesParser
from email.utils import parseaddr, parsedate_to_datetime
from pathlib import Path

import requests
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

# Configuration
API_BASE_URL = "http://127.0.0.1:8000"


def eml_to_payload(file_path: Path) -> dict:
    """
    Parse a saved RFC 822 message into the webhook payload shape.

    The Message-ID header is used as the email id (falls back to the file
    name); the plain-text part is preferred for the content.
    """
    with open(file_path, "rb") as f:
        message = BytesParser(policy=policy.default).parse(f)

    body_part = message.get_body(preferencelist=("plain", "html"))
    content = body_part.get_content() if body_part is not None else ""

    received_at = datetime.now(UTC)
    if message["Date"]:
        try:
            received_at = parsedate_to_datetime(message["Date"])
        except (TypeError, ValueError):
            pass

    _, sender_address = parseaddr(message["From"] or "")

    return {
        "id": (message["Message-ID"] or file_path.stem).strip("<> "),
        "subject": message["Subject"] or "",
        "content": content,
        "from": sender_address or (message["From"] or ""),
        "receivedAt": received_at.isoformat(),
    }


class EmailDropHandler(FileSystemEventHandler):
    """Handles new .eml file events"""

    def __init__(self, watch_folder, done_folder, api_url=API_BASE_URL):
        self.watch_folder = Path(watch_folder)
        self.done_folder = Path(done_folder)
        self.api_url = api_url
        self.seen_files = set()

        self.done_folder.mkdir(exist_ok=True)

    def on_created(self, event):
        """Called when a file is created in the watched folder"""
        if event.is_directory:
            return

        file_path = Path(event.src_path)

        if file_path.suffix.lower() != ".eml":
            return

        if file_path in self.seen_files:
            return

        # Small delay to ensure file is fully written
        time.sleep(1)

        if not file_path.exists():
            return

        self.seen_files.add(file_path)
        self.submit_email(file_path)

    def submit_email(self, file_path: Path):
        """Post a dropped message to the webhook"""
        print("\n" + "=" * 70)
        print(f"📨 NEW EMAIL DETECTED: {file_path.name}")
        print("=" * 70)

        try:
            payload = eml_to_payload(file_path)
            print(f"Subject: {payload['subject']}")
            print(f"From: {payload['from']}")

            response = requests.post(f"{self.api_url}/webhook/email", json=payload, timeout=120)
            data = response.json()

            if response.status_code == 200 and "invoiceId" in data:
                print(f"✅ PROCESSED: invoice {data['invoiceId']}")
                prefix = "OK"
            elif response.status_code == 200:
                print(f"⏭️  NOT PROCESSED: {data.get('reason')}")
                prefix = "SKIPPED"
            else:
                print(f"❌ FAILED ({response.status_code}): {data.get('details') or data.get('error')}")
                prefix = "FAILED"

            self.log_submission(file_path.name, response.status_code, data)

        except requests.exceptions.Timeout:
            print("⏱️  Request timed out")
            prefix = "ERROR"
        except Exception as e:
            print(f"❌ Error: {str(e)}")
            prefix = "ERROR"

        dest_path = self.done_folder / f"{prefix}_{file_path.name}"
        file_path.rename(dest_path)
        print(f"📁 Moved to: {dest_path}")
        print("=" * 70)

    def log_submission(self, filename: str, http_status: int, data: dict):
        """Append the webhook response to a JSON log next to the watch folder"""
        log_file = self.watch_folder.parent / "submission_log.json"

        if log_file.exists():
            with open(log_file, "r") as f:
                log_data = json.load(f)
        else:
            log_data = []

        log_data.append({
            "timestamp": datetime.now(UTC).isoformat(),
            "filename": filename,
            "http_status": http_status,
            "response": data,
        })

        with open(log_file, "w") as f:
            json.dump(log_data, f, indent=2)


def main():
    parser = argparse.ArgumentParser(
        description="Watch a folder for .eml files and submit them to the email webhook"
    )
    parser.add_argument(
        "--watch-folder",
        default="./emails-incoming",
        help="Folder to watch for new .eml files (default: ./emails-incoming)"
    )
    parser.add_argument(
        "--done-folder",
        default="./emails-submitted",
        help="Folder submitted files are moved to (default: ./emails-submitted)"
    )
    parser.add_argument(
        "--api-url",
        default=API_BASE_URL,
        help=f"API base URL (default: {API_BASE_URL})"
    )

    args = parser.parse_args()

    watch_folder = Path(args.watch_folder)
    watch_folder.mkdir(exist_ok=True)

    event_handler = EmailDropHandler(args.watch_folder, args.done_folder, api_url=args.api_url)
    observer = Observer()
    observer.schedule(event_handler, str(watch_folder), recursive=False)
    observer.start()

    print("=" * 70)
    print("🔍 EMAIL DROP WATCHER")
    print("=" * 70)
    print(f"Watching: {watch_folder.absolute()}")
    print(f"Submitted → {Path(args.done_folder).absolute()}")
    print(f"API: {args.api_url}")
    print()
    print("💡 Drop .eml files with 'Tech Invoice' in the subject into the watch folder")
    print("Press Ctrl+C to stop")
    print("=" * 70)
    print()

    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        print("\n\n👋 Stopping watcher...")
        observer.stop()

    observer.join()
    print("✅ Watcher stopped")


if __name__ == "__main__":
    main()
