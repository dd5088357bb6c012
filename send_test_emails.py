#!/usr/bin/env python3
"""
Send sample tech-invoice emails to the webhook and print how each was handled.
"""
import argparse
import time
import uuid
from datetime import datetime, UTC

import requests

# Configuration
API_BASE_URL = "http://127.0.0.1:8000"

SAMPLE_EMAILS = [
    {
        "subject": "Tech Invoice - CloudHost Pro",
        "from": "billing@cloudhost.example",
        "content": "Hello,\n\nYour CloudHost Pro invoice dated 2024-01-30 is ready.\nAmount due: $100.00\n\nThanks,\nCloudHost Billing",
    },
    {
        "subject": "Tech invoice: DevTools Suite annual license",
        "from": "accounts@devtools.example",
        "content": "Invoice date: 2024-02-15\nLicense: DevTools Suite (10 seats)\nTotal: 1,250.00 USD",
    },
    {
        # No marker phrase - acknowledged but not processed
        "subject": "Team lunch on Friday",
        "from": "office@example.com",
        "content": "Pizza at noon.",
    },
]


def send_email(api_url: str, email: dict):
    """Post one email to the webhook and show the outcome"""
    payload = {
        "id": f"sample-{uuid.uuid4()}",
        "receivedAt": datetime.now(UTC).isoformat(),
        **email,
    }
    response = requests.post(f"{api_url}/webhook/email", json=payload, timeout=120)
    data = response.json()

    if response.status_code == 200 and "invoiceId" in data:
        print(f"✅ PROCESSED: {email['subject']} → {data['invoiceId']}")
    elif response.status_code == 200:
        print(f"⏭️  NOT PROCESSED: {email['subject']} ({data.get('reason')})")
    else:
        print(f"❌ FAILED: {email['subject']} - {response.status_code} {data.get('details') or data}")

    return data


def main():
    parser = argparse.ArgumentParser(description="Send sample tech-invoice emails to the webhook")
    parser.add_argument("--api-url", default=API_BASE_URL, help=f"API base URL (default: {API_BASE_URL})")
    args = parser.parse_args()

    print("=" * 70)
    print("Tech Invoice Webhook - Sample Email Run")
    print("=" * 70)
    print(f"API Endpoint: {args.api_url}")
    print("-" * 70)

    for email in SAMPLE_EMAILS:
        send_email(args.api_url, email)
        time.sleep(1)

    print("-" * 70)
    print("\nFetching processing stats...")

    response = requests.get(f"{args.api_url}/invoices/stats", timeout=30)
    if response.status_code == 200:
        stats = response.json()
        print(f"   Total: {stats['total']}")
        print(f"   Processed: {stats['processed']}")
        print(f"   Failed: {stats['failed']}")
        print(f"   Pending: {stats['pending']}")
        print(f"   Success rate: {stats['successRate']:.2f}%")

    print("=" * 70)
    print("Run Complete!")
    print("=" * 70)


if __name__ == "__main__":
    main()
