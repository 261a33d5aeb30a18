"""Test doubles for the completions client, the grants cache and SMTP."""

import json
import smtplib
from typing import List

from grantbridge.core.errors import CacheReadError, CacheWriteError


class FakeSonarClient:
    """Completions client returning canned replies in order."""

    def __init__(self, replies=None, error=None):
        self.replies = list(replies or [])
        self.error = error
        self.calls = []

    def complete(self, messages, model="sonar", max_tokens=None, temperature=None, response_format=None):
        self.calls.append({
            "messages": messages,
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "response_format": response_format,
        })
        if self.error is not None:
            raise self.error
        if not self.replies:
            return ""
        return self.replies.pop(0)


class InMemoryCacheStore:
    """Grants cache kept in a list, with switchable failures."""

    def __init__(self, rows=None):
        self.rows: List = list(rows or [])
        self.fail_read = False
        self.fail_delete = False
        self.fail_insert = False
        self.fail_refresh = False
        self.refreshed = 0

    def fetch_featured(self):
        if self.fail_read:
            raise CacheReadError("Failed to read grants cache")
        return [row for row in self.rows if row.is_featured]

    def delete_all(self):
        if self.fail_delete:
            raise CacheWriteError("Grants cache delete error")
        deleted = len(self.rows)
        self.rows = []
        return deleted

    def insert_grants(self, grants):
        if self.fail_insert:
            raise CacheWriteError("Grants cache insert error")
        self.rows.extend(grants)
        return len(grants)

    def refresh_popular_open(self):
        if self.fail_refresh:
            raise CacheWriteError("popular_open refresh error")
        self.refreshed += 1

    def close(self):
        pass


def raw_grant(n: int, **overrides):
    record = {
        "title": f"Grant {n}",
        "organization": f"Org {n}",
        "description": f"Description {n}",
        "amount": f"${n},000",
        "deadline": "2026-05-01",
        "eligibility": "Undergraduate\nUS citizen",
        "requirements": "Essay; Transcript",
        "tags": "STEM, Merit",
        "link": f"https://example.org/grant-{n}",
    }
    record.update(overrides)
    return record


def grants_reply(count: int) -> str:
    return json.dumps([raw_grant(n) for n in range(1, count + 1)])




def legacy_payload(**overrides):
    payload = {
        "age": 20,
        "country": "United States",
        "gender": "Female",
        "citizenship": "US Citizen",
        "education": "Undergraduate",
        "degreeType": "Bachelor's",
        "yearOfStudy": "2nd Year",
        "fieldOfStudy": "Biology",
        "gpa": "3.8",
        "incomeBracket": "25k-50k",
        "financialNeed": True,
        "ethnicity": "Hispanic",
        "identifiers": ["First-Gen"],
    }
    payload.update(overrides)
    return payload


class FakeSMTP:
    """Stands in for ``smtplib.SMTP``. Instances are collected on the class."""

    instances = []
    fail = False

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.tls = False
        self.login_args = None
        self.messages = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.tls = True

    def login(self, user, password):
        self.login_args = (user, password)

    def send_message(self, msg):
        if FakeSMTP.fail:
            raise smtplib.SMTPServerDisconnected("gone")
        self.messages.append(msg)
