'''
Outlook generator - mail, calendar, contacts and Outlook-only records.

Calendar items are RFC 5545 iCalendar text, contacts RFC 6350-style vCard
3.0 text, and the Outlook-only records (tasks, rules, notes, quick steps, ...)
JSON documents. Mail operations talk SMTP (smtplib) and IMAP (imaplib) when a
connection config is passed; without one they describe the operation.
IMAP message ids are UIDs.
'''

import ast
import email
import imaplib
import json
import math
import mimetypes
import os
import re
import smtplib
import time
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from email import policy
from email.message import EmailMessage
from email.utils import formatdate, make_msgid
from typing import Any, Iterator, Optional, Union
from xml.sax.saxutils import quoteattr

from ..errors import MailError

import logging
logger = logging.getLogger(__name__)

MAIL_TIMEOUT = 30
DEFAULT_SENDER = "noreply@officewhisperer.com"
PRODID = "-//Office Whisperer//EN"
ICS_LINE_LIMIT = 75
MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

PRIORITY_HEADERS = {
    "high": ("1 (Highest)", "High"),
    "normal": ("3 (Normal)", "Normal"),
    "low": ("5 (Lowest)", "Low"),
}

SEARCH_KEYS = {"subject": "SUBJECT", "from": "FROM", "body": "BODY", "to": "TO"}

FETCH_UID = re.compile(rb"UID (\d+)")
FETCH_FLAGS = re.compile(rb"FLAGS \(([^)]*)\)")


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def timestamp_ms() -> int:
    return int(time.time() * 1000)


def to_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def join_addresses(value: Union[str, list, None]) -> str:
    if not value:
        return ""
    return ", ".join(value) if isinstance(value, list) else value


def parse_time(value: str) -> datetime:
    """ISO 8601 timestamp; naive values are taken as local time."""
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        raise ValueError(f"Invalid date/time: {value!r}")
    return parsed.astimezone(timezone.utc)


def ics_time(value: Union[str, datetime]) -> str:
    moment = parse_time(value) if isinstance(value, str) else value.astimezone(timezone.utc)
    return moment.strftime("%Y%m%dT%H%M%SZ")


def ics_escape(text: str) -> str:
    return (text.replace("\\", "\\\\").replace(";", "\\;").replace(",", "\\,")
            .replace("\r\n", "\\n").replace("\n", "\\n"))


def fold(line: str) -> str:
    """Fold a content line at 75 UTF-8 octets, continuation lines start with a space.

    Breaks fall between characters, never inside a multi-byte sequence.
    """
    if len(line.encode("utf-8")) <= ICS_LINE_LIMIT:
        return line
    parts, current, size = [], "", 0
    for char in line:
        width = len(char.encode("utf-8"))
        if size + width > ICS_LINE_LIMIT:
            parts.append(current)
            current, size = " ", 1
        current += char
        size += width
    parts.append(current)
    return "\r\n".join(parts)


def unfold(text: str) -> list[str]:
    lines: list[str] = []
    for raw in text.replace("\r\n", "\n").split("\n"):
        if raw.startswith((" ", "\t")) and lines:
            lines[-1] += raw[1:]
        elif raw:
            lines.append(raw)
    return lines


def parse_properties(text: str, begin: str) -> list[dict]:
    """Property maps of every BEGIN:<begin> block, keyed by property name without parameters."""
    blocks, current = [], None
    for line in unfold(text):
        if line == f"BEGIN:{begin}":
            current = {}
        elif line == f"END:{begin}" and current is not None:
            blocks.append(current)
            current = None
        elif current is not None and ":" in line:
            key, value = line.split(":", 1)
            name = key.split(";", 1)[0].upper()
            current.setdefault(name, value)
    return blocks


def attendee_lines(attendees: Optional[list]) -> list[str]:
    lines = []
    for attendee in attendees or []:
        role = "REQ-PARTICIPANT" if attendee.get("required") is not False else "OPT-PARTICIPANT"
        name = attendee.get("name") or attendee["email"]
        lines.append(f'ATTENDEE;ROLE={role};CN="{name}":mailto:{attendee["email"]}')
    return lines


def build_ics(subject: str, start: str, end: str, location: Optional[str] = None,
              description: Optional[str] = None, attendees: Optional[list] = None,
              reminder: Optional[int] = None, rrule: Optional[str] = None) -> str:
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        "CALSCALE:GREGORIAN",
        "METHOD:REQUEST",
        "BEGIN:VEVENT",
        f"UID:{timestamp_ms()}@officewhisperer.com",
        f"DTSTAMP:{ics_time(datetime.now(timezone.utc))}",
        f"DTSTART:{ics_time(start)}",
        f"DTEND:{ics_time(end)}",
    ]
    if rrule:
        lines.append(f"RRULE:{rrule}")
    lines.append(f"SUMMARY:{ics_escape(subject)}")
    if location:
        lines.append(f"LOCATION:{ics_escape(location)}")
    if description:
        lines.append(f"DESCRIPTION:{ics_escape(description)}")
    lines.extend(attendee_lines(attendees))
    if reminder:
        lines.extend([
            "BEGIN:VALARM",
            "ACTION:DISPLAY",
            "DESCRIPTION:Reminder",
            f"TRIGGER:-PT{reminder}M",
            "END:VALARM",
        ])
    lines.extend(["STATUS:CONFIRMED", "SEQUENCE:0", "END:VEVENT", "END:VCALENDAR"])
    return "\r\n".join(fold(line) for line in lines) + "\r\n"


def build_rrule(recurrence: dict) -> str:
    rule = f"FREQ={recurrence['frequency'].upper()}"
    if recurrence.get("interval"):
        rule += f";INTERVAL={recurrence['interval']}"
    if recurrence.get("daysOfWeek"):
        rule += f";BYDAY={','.join(recurrence['daysOfWeek'])}"
    if recurrence.get("until"):
        rule += f";UNTIL={ics_time(recurrence['until'])}"
    if recurrence.get("count"):
        rule += f";COUNT={recurrence['count']}"
    return rule


def build_vcf(first_name: str, last_name: str, email_address: Optional[str] = None,
              phone: Optional[str] = None, company: Optional[str] = None, job_title: Optional[str] = None,
              address: Optional[str] = None, note: Optional[str] = None) -> str:
    lines = [
        "BEGIN:VCARD",
        "VERSION:3.0",
        f"N:{last_name};{first_name};;;",
        f"FN:{first_name} {last_name}",
    ]
    if email_address:
        lines.append(f"EMAIL;TYPE=INTERNET:{email_address}")
    if phone:
        lines.append(f"TEL;TYPE=WORK,VOICE:{phone}")
    if company:
        lines.append(f"ORG:{company}")
    if job_title:
        lines.append(f"TITLE:{job_title}")
    if address:
        lines.append(f"ADR;TYPE=WORK:;;{address};;;;")
    if note:
        lines.append(f"NOTE:{note}")
    lines.append(f"REV:{now_iso()}")
    lines.append("END:VCARD")
    return "\r\n".join(lines) + "\r\n"


def build_opml(feeds: list[dict]) -> str:
    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<opml version="2.0">',
        "<head>",
        "<title>Outlook RSS Feeds</title>",
        f"<dateCreated>{formatdate(usegmt=True)}</dateCreated>",
        "</head>",
        "<body>",
    ]
    for feed in feeds:
        lines.append(f'<outline type="rss" text={quoteattr(feed.get("name") or feed["url"])} '
                     f'xmlUrl={quoteattr(feed["url"])} />')
    lines.extend(["</body>", "</opml>"])
    return "\n".join(lines)


def strip_tags(html: str) -> str:
    return re.sub(r"<[^>]*>", "", html)


# ── mail merge conditions ────────────────────────────────────────────

PLACEHOLDER = re.compile(r"\{\{\s*([\w.\- ]+?)\s*\}\}")
ALLOWED_NODES = (ast.Expression, ast.BoolOp, ast.And, ast.Or, ast.UnaryOp, ast.Not, ast.USub, ast.Compare,
                 ast.Eq, ast.NotEq, ast.Gt, ast.GtE, ast.Lt, ast.LtE, ast.Constant, ast.Name, ast.Load)
LITERALS = {"true": True, "false": False, "null": None, "undefined": None}


def evaluate_condition(condition: str, record: dict) -> bool:
    """Evaluate a comparison such as "{{tier}} === 'premium' && {{amount}} > 100".

    Only comparisons, boolean operators and literals are accepted; anything
    else makes the condition false. Nothing is executed.
    """
    values: dict[str, Any] = dict(LITERALS)

    def bind(match: re.Match) -> str:
        name = f"_v{len(values)}"
        values[name] = record.get(match.group(1))
        return name

    expression = PLACEHOLDER.sub(bind, condition)
    expression = (expression.replace("===", "==").replace("!==", "!=")
                  .replace("&&", " and ").replace("||", " or "))
    expression = re.sub(r"!(?!=)", " not ", expression)
    try:
        tree = ast.parse(expression.strip(), mode="eval")
        for node in ast.walk(tree):
            if not isinstance(node, ALLOWED_NODES):
                raise ValueError(f"unsupported syntax {type(node).__name__}")
            if isinstance(node, ast.Name) and node.id not in values:
                raise ValueError(f"unknown name {node.id}")
        return bool(_evaluate(tree.body, values))
    except (SyntaxError, ValueError, TypeError) as e:
        logger.error(f"Failed to evaluate condition: {condition}: {e}")
        return False


def _evaluate(node: ast.AST, values: dict) -> Any:
    if isinstance(node, ast.Constant):
        return node.value
    if isinstance(node, ast.Name):
        return values[node.id]
    if isinstance(node, ast.UnaryOp):
        operand = _evaluate(node.operand, values)
        return not operand if isinstance(node.op, ast.Not) else -operand
    if isinstance(node, ast.BoolOp):
        results = (_evaluate(value, values) for value in node.values)
        return all(results) if isinstance(node.op, ast.And) else any(results)
    if isinstance(node, ast.Compare):
        left = _evaluate(node.left, values)
        for op, comparator in zip(node.ops, node.comparators):
            right = _evaluate(comparator, values)
            if not _compare(op, left, right):
                return False
            left = right
        return True
    raise ValueError(f"unsupported syntax {type(node).__name__}")


def _compare(op: ast.cmpop, left: Any, right: Any) -> bool:
    if isinstance(op, ast.Eq):
        return left == right
    if isinstance(op, ast.NotEq):
        return left != right
    left, right = float(left), float(right)
    if isinstance(op, ast.Gt):
        return left > right
    if isinstance(op, ast.GtE):
        return left >= right
    if isinstance(op, ast.Lt):
        return left < right
    return left <= right


def matches_filter(record: dict, rule: dict) -> bool:
    value = record.get(rule["field"])
    expected = rule.get("value")
    operator = rule.get("operator")
    try:
        if operator == "equals":
            return value == expected
        if operator == "notEquals":
            return value != expected
        if operator == "contains":
            return str(expected) in str(value)
        if operator == "greaterThan":
            return float(value) > float(expected)
        if operator == "lessThan":
            return float(value) < float(expected)
        if operator == "startsWith":
            return str(value).startswith(str(expected))
        if operator == "endsWith":
            return str(value).endswith(str(expected))
    except (TypeError, ValueError):
        return False
    return True


def fill_placeholders(text: str, record: dict) -> str:
    for key, value in record.items():
        text = text.replace("{{" + str(key) + "}}", str(value))
    return text


# ── IMAP helpers ─────────────────────────────────────────────────────

def quote_mailbox(name: str) -> str:
    return '"' + name.replace("\\", "\\\\").replace('"', '\\"') + '"'


def imap_date(value: str) -> str:
    moment = parse_time(value)
    return f"{moment.day:02d}-{MONTHS[moment.month - 1]}-{moment.year}"


def keyword(name: str) -> str:
    """IMAP keyword atom for a category name."""
    return re.sub(r"[^A-Za-z0-9_.\-]", "_", name) or "Category"


def _ok(response: tuple, what: str) -> list:
    typ, data = response
    if typ != "OK":
        detail = b" ".join(d for d in data if isinstance(d, bytes)).decode(errors="replace")
        raise MailError(f"{what}: {detail}")
    return data


@contextmanager
def imap_session(config: dict) -> Iterator[imaplib.IMAP4]:
    client_class = imaplib.IMAP4_SSL if config.get("tls") is not False else imaplib.IMAP4
    timeout = config.get("timeout") or MAIL_TIMEOUT
    try:
        client = client_class(config["host"], config["port"], timeout=timeout)
        client.login(config["user"], config["password"])
    except (imaplib.IMAP4.error, OSError) as e:
        raise MailError(f"IMAP error: {e}") from e
    logger.info(f"Connected to IMAP server {config['host']}:{config['port']}")
    try:
        yield client
    except (imaplib.IMAP4.error, OSError) as e:
        raise MailError(f"IMAP error: {e}") from e
    finally:
        try:
            client.logout()
        except (imaplib.IMAP4.error, OSError) as e:
            logger.debug(f"IMAP logout failed: {e}")


def select(client: imaplib.IMAP4, folder: str, readonly: bool = False) -> int:
    data = _ok(client.select(quote_mailbox(folder), readonly=readonly), f"Failed to open folder {folder}")
    return int(data[0] or 0)


def search(client: imaplib.IMAP4, *criteria: Union[str, bytes]) -> list[str]:
    data = _ok(client.uid("SEARCH", *criteria), "Search failed")
    return [uid.decode() for uid in (data[0] or b"").split()]


def fetch(client: imaplib.IMAP4, uids: list[str], query: str) -> list[tuple[str, list[str], bytes]]:
    """(uid, flags, payload) for every message returned by a UID FETCH."""
    data = _ok(client.uid("FETCH", ",".join(uids), query), "Fetch error")
    messages = []
    for index, item in enumerate(data):
        if not isinstance(item, tuple):
            continue
        header, payload = item
        trailer = data[index + 1] if index + 1 < len(data) and isinstance(data[index + 1], bytes) else b""
        uid = FETCH_UID.search(header) or FETCH_UID.search(trailer)
        flags = FETCH_FLAGS.search(header) or FETCH_FLAGS.search(trailer)
        messages.append((
            uid.group(1).decode() if uid else "",
            flags.group(1).decode().split() if flags else [],
            payload,
        ))
    return messages


def store(client: imaplib.IMAP4, uids: list[str], command: str, flags: str) -> None:
    _ok(client.uid("STORE", ",".join(uids), command, f"({flags})"), f"Failed to update flags {flags}")


def create_mailbox(client: imaplib.IMAP4, folder: str) -> bool:
    """CREATE a folder; False when it already exists."""
    typ, data = client.create(quote_mailbox(folder))
    if typ == "OK":
        return True
    detail = b" ".join(d for d in data if isinstance(d, bytes)).decode(errors="replace")
    if "ALREADYEXISTS" in detail.upper() or "EXISTS" in detail.upper():
        return False
    raise MailError(f"Failed to create folder: {detail}")


def move(client: imaplib.IMAP4, uids: list[str], folder: str) -> None:
    """UID MOVE when supported, else COPY + \\Deleted + EXPUNGE."""
    if "MOVE" in client.capabilities:
        _ok(client.uid("MOVE", ",".join(uids), quote_mailbox(folder)), "Failed to move emails")
        return
    _ok(client.uid("COPY", ",".join(uids), quote_mailbox(folder)), "Failed to copy emails")
    store(client, uids, "+FLAGS", "\\Deleted")
    _ok(client.expunge(), "Failed to expunge")


def summarize(uid: str, flags: list[str], raw: bytes, snippet_length: int = 200) -> dict:
    message = email.message_from_bytes(raw, policy=policy.default)
    body = message.get_body(preferencelist=("plain", "html"))
    text = body.get_content() if body is not None else ""
    if body is not None and body.get_content_subtype() == "html":
        text = strip_tags(text)
    return {
        "id": uid,
        "from": str(message.get("From", "")),
        "to": str(message.get("To", "")),
        "subject": str(message.get("Subject", "")),
        "date": str(message.get("Date", "")),
        "snippet": " ".join(text.split())[:snippet_length],
        "unread": "\\Seen" not in flags,
    }


def full_message(uid: str, flags: list[str], raw: bytes, include_headers: bool = True,
                 include_attachments: bool = True, include_raw: bool = False) -> dict:
    message = email.message_from_bytes(raw, policy=policy.default)
    plain = message.get_body(preferencelist=("plain",))
    html = message.get_body(preferencelist=("html",))
    result: dict[str, Any] = {
        "id": uid,
        "from": str(message.get("From", "")),
        "to": str(message.get("To", "")),
        "cc": str(message.get("Cc", "")),
        "subject": str(message.get("Subject", "")),
        "date": str(message.get("Date", "")),
        "flags": flags,
        "body": plain.get_content() if plain is not None else "",
        "html": html.get_content() if html is not None else None,
    }
    if include_headers:
        result["headers"] = {key: str(value) for key, value in message.items()}
    if include_attachments:
        result["attachments"] = [
            {
                "filename": part.get_filename(),
                "contentType": part.get_content_type(),
                "size": len(part.get_payload(decode=True) or b""),
            }
            for part in message.iter_attachments()
        ]
    if include_raw:
        result["rawContent"] = raw.decode("utf-8", errors="replace")
    return result


# ── SMTP helpers ─────────────────────────────────────────────────────

def build_message(sender: str, to: Union[str, list], subject: str, body: str, html: bool = False,
                  cc: Union[str, list, None] = None, bcc: Union[str, list, None] = None,
                  attachments: Optional[list] = None, priority: Optional[str] = None) -> EmailMessage:
    message = EmailMessage()
    message["From"] = sender
    message["To"] = join_addresses(to)
    if cc:
        message["Cc"] = join_addresses(cc)
    if bcc:
        message["Bcc"] = join_addresses(bcc)
    message["Subject"] = subject
    message["Message-ID"] = make_msgid(domain=sender.rsplit("@", 1)[-1] if "@" in sender else None)
    if priority in PRIORITY_HEADERS:
        message["X-Priority"], message["Importance"] = PRIORITY_HEADERS[priority]
    message.set_content(body, subtype="html" if html else "plain")

    for attachment in attachments or []:
        name = attachment.get("filename") or os.path.basename(attachment.get("path") or "attachment")
        if attachment.get("path"):
            with open(os.path.expanduser(attachment["path"]), "rb") as f:
                data = f.read()
        else:
            content = attachment.get("content") or ""
            data = content.encode("utf-8") if isinstance(content, str) else content
        mime_type = mimetypes.guess_type(name)[0] or "application/octet-stream"
        maintype, subtype = mime_type.split("/", 1)
        message.add_attachment(data, maintype=maintype, subtype=subtype, filename=name)
    return message


@contextmanager
def smtp_session(config: dict) -> Iterator[smtplib.SMTP]:
    """SSL when `secure` is true (or unset on port 465), else STARTTLS when offered."""
    timeout = config.get("timeout") or MAIL_TIMEOUT
    secure = config.get("secure")
    if secure is None:
        secure = config["port"] == 465
    try:
        if secure:
            client = smtplib.SMTP_SSL(config["host"], config["port"], timeout=timeout)
        else:
            client = smtplib.SMTP(config["host"], config["port"], timeout=timeout)
            client.ehlo()
            if client.has_extn("starttls"):
                client.starttls()
                client.ehlo()
        auth = config.get("auth") or {}
        if auth.get("user"):
            client.login(auth["user"], auth.get("pass", ""))
    except (smtplib.SMTPException, OSError) as e:
        raise MailError(f"Failed to send email: {e}") from e
    try:
        yield client
    except (smtplib.SMTPException, OSError) as e:
        raise MailError(f"Failed to send email: {e}") from e
    finally:
        try:
            client.quit()
        except (smtplib.SMTPException, OSError) as e:
            logger.debug(f"SMTP quit failed: {e}")


def sender_for(config: dict) -> str:
    return (config.get("auth") or {}).get("user") or DEFAULT_SENDER


class OutlookGenerator:
    """Outlook artifacts and mail operations. Every method returns text."""

    # ── core ─────────────────────────────────────────────────────────

    def send_email(self, to: Union[str, list], subject: str, body: str, cc=None, bcc=None,
                   attachments: Optional[list] = None, html: bool = False, priority: Optional[str] = None,
                   smtp_config: Optional[dict] = None) -> str:
        recipients = join_addresses(to)
        if not smtp_config:
            return ("Email configuration:\n"
                    f"To: {recipients}\n"
                    f"Subject: {subject}\n"
                    f"Body: {body[:100]}...\n\n"
                    "Note: SMTP configuration required for actual sending.\n"
                    "Provide smtpConfig with host, port, and auth credentials.")

        message = build_message(sender_for(smtp_config), to, subject, body, html=html, cc=cc, bcc=bcc,
                                attachments=attachments, priority=priority)
        with smtp_session(smtp_config) as client:
            client.send_message(message)
        logger.info(f"Sent email {message['Message-ID']} to {recipients}")
        lines = [
            "Email sent successfully!",
            f"Message ID: {message['Message-ID']}",
            f"To: {recipients}",
            f"Subject: {subject}",
        ]
        if attachments:
            lines.append(f"Attachments: {len(attachments)}")
        lines.append("Status: Delivered")
        return "\n".join(lines)

    def create_meeting(self, subject: str, start_time: str, end_time: str, location: Optional[str] = None,
                       description: Optional[str] = None, attendees: Optional[list] = None,
                       reminder: Optional[int] = None) -> str:
        return build_ics(subject, start_time, end_time, location=location, description=description,
                         attendees=attendees, reminder=reminder)

    def add_contact(self, first_name: str, last_name: str, email_address: Optional[str] = None,
                    phone: Optional[str] = None, company: Optional[str] = None, job_title: Optional[str] = None,
                    address: Optional[str] = None) -> str:
        return build_vcf(first_name, last_name, email_address, phone, company, job_title, address)

    def create_task(self, subject: str, due_date: Optional[str] = None, priority: Optional[str] = None,
                    status: Optional[str] = None, category: Optional[str] = None, reminder: Optional[str] = None,
                    notes: Optional[str] = None) -> str:
        return to_json({
            "subject": subject,
            "dueDate": due_date,
            "priority": priority or "normal",
            "status": status or "notStarted",
            "category": category,
            "reminder": reminder,
            "notes": notes,
            "createdAt": now_iso(),
        })

    def set_rule(self, name: str, conditions: list[dict], actions: list[dict]) -> str:
        return to_json({
            "name": name,
            "enabled": True,
            "conditions": [
                {"type": c.get("type"), "operator": c.get("operator") or "contains", "value": c.get("value")}
                for c in conditions
            ],
            "actions": [{"type": a.get("type"), "value": a.get("value")} for a in actions],
            "createdAt": now_iso(),
        })

    # ── reading and searching ────────────────────────────────────────

    def read_emails(self, folder: str = "INBOX", limit: int = 10, unread_only: bool = False,
                    since: Optional[str] = None, imap_config: Optional[dict] = None) -> str:
        if not imap_config:
            return ("Email reading configuration:\n"
                    f"Folder: {folder}\n"
                    f"Limit: {limit} emails\n"
                    f"Unread only: {'Yes' if unread_only else 'No'}\n"
                    f"Since: {since or 'All time'}\n\n"
                    "Note: IMAP configuration required for actual email reading.\n"
                    "Provide imapConfig with host, port, user, password, and tls settings.")

        criteria = ["UNSEEN"] if unread_only else []
        if since:
            criteria += ["SINCE", imap_date(since)]
        with imap_session(imap_config) as client:
            select(client, folder, readonly=True)
            uids = search(client, *(criteria or ["ALL"]))[-limit:]
            messages = fetch(client, uids, "(UID FLAGS BODY.PEEK[])") if uids else []
        emails = [summarize(uid, flags, raw) for uid, flags, raw in messages]
        emails.reverse()
        return to_json(emails)

    def search_emails(self, query: str, search_in: Optional[list] = None, folder: str = "INBOX",
                      limit: int = 50, since: Optional[str] = None, imap_config: Optional[dict] = None) -> str:
        fields = search_in or list(SEARCH_KEYS)
        if not imap_config:
            return ("Email search configuration:\n"
                    f'Query: "{query}"\n'
                    f"Search in: {', '.join(search_in) if search_in else 'all fields'}\n"
                    f"Folder: {folder}\n"
                    f"Limit: {limit} results\n"
                    f"Since: {since or 'All time'}\n\n"
                    "Note: IMAP configuration required for actual email searching.")

        quoted = b'"' + query.replace("\\", "\\\\").replace('"', '\\"').encode("utf-8") + b'"'
        # OR takes exactly two keys, so n fields need n - 1 prefixed ORs
        criteria: list[Union[str, bytes]] = ["OR"] * (len(fields) - 1)
        for field in fields:
            criteria += [SEARCH_KEYS[field], quoted]
        if since:
            criteria += ["SINCE", imap_date(since)]
        with imap_session(imap_config) as client:
            select(client, folder, readonly=True)
            uids = search(client, "CHARSET", "UTF-8", *criteria)[-limit:]
            messages = fetch(client, uids, "(UID FLAGS BODY.PEEK[])") if uids else []
        results = [summarize(uid, flags, raw) for uid, flags, raw in messages]
        results.reverse()
        return to_json({"query": query, "searchIn": fields, "folder": folder, "count": len(results),
                        "results": results})

    def read_full_email(self, message_ids: list[str], folder: str = "INBOX", include_attachments: bool = True,
                        include_headers: bool = True, include_raw_content: bool = False, mark_as_read: bool = False,
                        imap_config: Optional[dict] = None) -> tuple[str, int]:
        """Returns (text, messages retrieved)."""
        if not imap_config:
            return ("Full email read configuration:\n"
                    f"Message IDs: {', '.join(message_ids)}\n"
                    f"Folder: {folder}\n"
                    f"Include attachments: {str(include_attachments).lower()}\n"
                    f"Include headers: {str(include_headers).lower()}\n"
                    f"Include raw content: {str(include_raw_content).lower()}\n"
                    f"Mark as read: {str(mark_as_read).lower()}\n\n"
                    "Note: IMAP configuration required for full email retrieval."), 0

        with imap_session(imap_config) as client:
            select(client, folder, readonly=not mark_as_read)
            messages = fetch(client, message_ids, "(UID FLAGS BODY.PEEK[])")
            if mark_as_read:
                store(client, message_ids, "+FLAGS", "\\Seen")
        emails = [full_message(uid, flags, raw, include_headers, include_attachments, include_raw_content)
                  for uid, flags, raw in messages]
        return to_json(emails), len(emails)

    # ── mailbox changes ──────────────────────────────────────────────

    def mark_read(self, message_ids: list[str], mark_as_read: bool, folder: str = "INBOX",
                  imap_config: Optional[dict] = None) -> str:
        state = "read" if mark_as_read else "unread"
        if not imap_config:
            return (f"Mark emails {state} operation:\n\n"
                    f"Message IDs: {', '.join(message_ids)}\n"
                    f"Count: {len(message_ids)}\n\n"
                    "Note: IMAP configuration required to mark emails.\n"
                    "Provide imapConfig to perform the operation.")
        with imap_session(imap_config) as client:
            select(client, folder)
            store(client, message_ids, "+FLAGS" if mark_as_read else "-FLAGS", "\\Seen")
        return f"Connected to {imap_config['host']}\nMarked {len(message_ids)} email(s) as {state}"

    def archive_email(self, message_ids: list[str], archive_folder: str = "Archive", folder: str = "INBOX",
                      imap_config: Optional[dict] = None) -> str:
        if not imap_config:
            return ("Archive emails operation:\n\n"
                    f"Message IDs: {', '.join(message_ids)}\n"
                    f"Count: {len(message_ids)}\n"
                    f"Archive folder: {archive_folder}\n\n"
                    "Note: IMAP configuration required to archive emails.\n"
                    "Provide imapConfig to move emails to archive folder.")
        with imap_session(imap_config) as client:
            create_mailbox(client, archive_folder)
            select(client, folder)
            move(client, message_ids, archive_folder)
        return (f"Connected to {imap_config['host']}\n"
                f"Archived {len(message_ids)} email(s) to folder: {archive_folder}")

    def delete_email(self, message_ids: list[str], folder: str = "INBOX", permanent: bool = False,
                     imap_config: Optional[dict] = None) -> str:
        if not imap_config:
            return ("Delete email configuration:\n"
                    f"Message IDs: {', '.join(message_ids)}\n"
                    f"Folder: {folder}\n"
                    f"Permanent: {str(permanent).lower()}\n\n"
                    "Note: IMAP configuration required to delete emails.")
        with imap_session(imap_config) as client:
            select(client, folder)
            store(client, message_ids, "+FLAGS", "\\Deleted")
            if permanent:
                _ok(client.expunge(), "Failed to expunge")
        if permanent:
            return f"Permanently deleted {len(message_ids)} email(s) from {folder}"
        return f"Marked {len(message_ids)} email(s) for deletion in {folder}"

    def move_email(self, message_ids: list[str], to_folder: str, from_folder: str = "INBOX",
                   create_folder: bool = False, imap_config: Optional[dict] = None) -> str:
        if not imap_config:
            return ("Move email configuration:\n"
                    f"Message IDs: {', '.join(message_ids)}\n"
                    f"From: {from_folder}\n"
                    f"To: {to_folder}\n"
                    f"Create destination: {str(create_folder).lower()}\n\n"
                    "Note: IMAP configuration required to move emails.")
        with imap_session(imap_config) as client:
            if create_folder:
                create_mailbox(client, to_folder)
            select(client, from_folder)
            move(client, message_ids, to_folder)
        return f"Moved {len(message_ids)} email(s) from {from_folder} to {to_folder}"

    def create_folder(self, folder_name: str, parent: Optional[str] = None,
                      imap_config: Optional[dict] = None) -> str:
        full_path = f"{parent}/{folder_name}" if parent else folder_name
        if not imap_config:
            return ("Create folder configuration:\n"
                    f"Folder path: {folder_name}\n"
                    f"Parent: {parent or 'root'}\n\n"
                    "Note: IMAP configuration required to create folders.")
        with imap_session(imap_config) as client:
            created = create_mailbox(client, full_path)
        return f"Created folder: {full_path}" if created else f"Folder already exists: {full_path}"

    def shared_mailbox(self, shared_mailbox: str, operation: str, folder: str = "INBOX",
                       email_data: Optional[dict] = None, imap_config: Optional[dict] = None,
                       smtp_config: Optional[dict] = None) -> tuple[str, Optional[dict]]:
        """Returns (text, listing) where listing is set for the list operation."""
        if not imap_config:
            return ("Shared mailbox access configuration:\n"
                    f"Shared mailbox: {shared_mailbox}\n"
                    f"Operation: {operation}\n"
                    f"Folder: {folder}\n\n"
                    "Note: IMAP configuration required for shared mailbox access."), None

        namespace = imap_config.get("sharedNamespace") or "shared"
        shared_folder = f"{namespace}/{shared_mailbox}/{folder}"
        if operation == "list":
            with imap_session(imap_config) as client:
                select(client, shared_folder, readonly=True)
                uids = search(client, "ALL")
            listing = {"sharedMailbox": shared_mailbox, "folder": folder, "messageCount": len(uids),
                       "messageIds": uids}
            return to_json(listing), listing

        if operation == "send" and email_data:
            config = smtp_config or {
                "host": imap_config["host"],
                "port": 587,
                "secure": False,
                "auth": {"user": imap_config["user"], "pass": imap_config["password"]},
                "timeout": imap_config.get("timeout"),
            }
            message = build_message(shared_mailbox, email_data["to"], email_data.get("subject", ""),
                                    email_data.get("body", ""), html=bool(email_data.get("html")))
            with smtp_session(config) as client:
                client.send_message(message)
            return (f"Sent email from shared mailbox {shared_mailbox}. "
                    f"Message ID: {message['Message-ID']}"), None

        return f"Operation {operation} configured for shared mailbox: {shared_mailbox}", None

    def cleanup_messages(self, scope: str = "folder", folder: str = "INBOX", delete_redundant: bool = False,
                         message_ids: Optional[list] = None, imap_config: Optional[dict] = None) -> str:
        if not imap_config:
            return ("Cleanup configuration:\n"
                    f"Folder: {folder}\n"
                    f"Scope: {scope}\n"
                    f"Delete redundant: {str(delete_redundant).lower()}\n\n"
                    "Note: IMAP configuration required for message cleanup.\n"
                    "This feature removes redundant messages in email conversations.")
        with imap_session(imap_config) as client:
            select(client, folder, readonly=True)
            if scope == "selectedMessages" and message_ids:
                uids = search(client, "UID", ",".join(message_ids))
            else:
                uids = search(client, "ALL")
        return (f"Cleanup would process {len(uids)} message(s) in {folder}.\n"
                f"Scope: {scope}\n"
                f"Action: {'Delete' if delete_redundant else 'Move to Deleted Items'}\n\n"
                "Note: Redundant messages are those whose text is quoted in full by a later reply.")

    def ignore_conversation(self, conversation_ids: list[str], restore: bool = False,
                            delete_existing: bool = False, imap_config: Optional[dict] = None) -> str:
        if not imap_config:
            return ("Ignore conversation configuration:\n"
                    f"Conversation IDs: {', '.join(conversation_ids)}\n"
                    f"Restore: {str(restore).lower()}\n"
                    f"Delete existing: {str(delete_existing).lower()}\n\n"
                    "Note: IMAP configuration required to ignore conversations.")
        action = "restored" if restore else "ignored"
        config = {
            "conversationIds": conversation_ids,
            "action": action,
            "deleteExisting": delete_existing,
            "timestamp": now_iso(),
            "note": "Ignored conversations are moved to Deleted Items and future messages in the thread "
                    "are automatically deleted.",
        }
        return (f"{len(conversation_ids)} conversation(s) {action}.\n\n{to_json(config)}\n\n"
                "Note: Outlook Ignore feature requires conversation tracking. Implement via server-side rules "
                "or client-side filters.")

    def flag_email(self, message_ids: list[str], flag: dict, folder: str = "INBOX",
                   imap_config: Optional[dict] = None) -> str:
        if not imap_config:
            return ("Flag email configuration:\n"
                    f"Message IDs: {', '.join(message_ids)}\n"
                    f"Flag type: {flag.get('type')}\n"
                    f"Color: {flag.get('color') or 'red'}\n"
                    f"Due date: {flag.get('dueDate') or 'none'}\n\n"
                    "Note: IMAP configuration required to flag emails.")
        clearing = flag.get("type") == "clear"
        with imap_session(imap_config) as client:
            select(client, folder)
            store(client, message_ids, "-FLAGS" if clearing else "+FLAGS", "\\Flagged")
        info = {
            "messageIds": message_ids,
            "flag": flag,
            "timestamp": now_iso(),
            "note": "IMAP supports basic flagging. Extended properties (color, due date, reminder) require "
                    "Exchange/Outlook client.",
        }
        verb = "Cleared flag on" if clearing else "Flagged"
        return f"{verb} {len(message_ids)} email(s).\n\n{to_json(info)}"

    def categories(self, operation: str, categories: Optional[list] = None, category_names: Optional[list] = None,
                   message_ids: Optional[list] = None, folder: str = "INBOX",
                   imap_config: Optional[dict] = None) -> tuple[str, bool]:
        """Returns (text, writable) where writable marks JSON meant for outputPath."""
        if operation == "create":
            return to_json({
                "operation": "create",
                "categories": categories or [],
                "timestamp": now_iso(),
                "note": "Outlook categories (master list) are stored in the Outlook profile. "
                        "Create them via File > Options > Mail > Categories.",
            }), True

        if operation in ("apply", "remove") and imap_config and message_ids and category_names:
            keywords = " ".join(keyword(name) for name in category_names)
            with imap_session(imap_config) as client:
                select(client, folder)
                store(client, message_ids, "+FLAGS" if operation == "apply" else "-FLAGS", keywords)
            return to_json({
                "operation": operation,
                "messageIds": message_ids,
                "categories": category_names,
                "keywords": keywords.split(),
                "timestamp": now_iso(),
                "note": "Categories applied via IMAP keywords. Full color category support requires "
                        "Exchange/Outlook client.",
            }), False

        if operation == "list":
            return to_json({
                "operation": "list",
                "categories": categories or [
                    {"name": "Red Category", "color": "red", "shortcut": "Ctrl+F2"},
                    {"name": "Blue Category", "color": "blue", "shortcut": "Ctrl+F3"},
                    {"name": "Green Category", "color": "green", "shortcut": "Ctrl+F4"},
                ],
                "note": "Default category list. Actual categories are user-specific and stored in the Outlook "
                        "profile.",
            }), True

        return f"Category operation: {operation} configured.", False

    # ── calendar and contacts ────────────────────────────────────────

    def create_recurring_meeting(self, subject: str, start_time: str, end_time: str, recurrence: dict,
                                 location: Optional[str] = None, attendees: Optional[list] = None,
                                 description: Optional[str] = None) -> str:
        return build_ics(subject, start_time, end_time, location=location, description=description,
                         attendees=attendees, rrule=build_rrule(recurrence))

    def email_template(self, name: str, subject: str, body: str, html: bool = False,
                       placeholders: Optional[list] = None) -> str:
        placeholders = placeholders or []
        usage = ("To use this template:\n"
                 "1. Replace placeholders like {{name}}, {{company}}, etc. with actual values\n"
                 "2. Load template and substitute values before sending\n\n"
                 f"Available placeholders: {', '.join(placeholders) or 'none'}")
        return to_json({
            "name": name,
            "subject": subject,
            "body": body,
            "html": html,
            "placeholders": placeholders,
            "createdAt": now_iso(),
            "usage": usage,
        })

    def calendar_view(self, start_date: str, end_date: str, view_type: str, output_format: str = "ics",
                      directory: Optional[str] = None) -> tuple[str, int]:
        """Events from the .ics files in `directory` that start inside the range. Returns (text, events)."""
        start, end = parse_time(start_date), parse_time(end_date)
        if end < start:
            raise ValueError("endDate must not be before startDate")
        events = []
        for path, event in self._calendar_events(directory):
            try:
                event_start = datetime.strptime(event.get("DTSTART", ""), "%Y%m%dT%H%M%SZ").replace(tzinfo=timezone.utc)
            except ValueError:
                continue
            if start <= event_start <= end:
                events.append((event_start, path, event))
        events.sort(key=lambda item: item[0])

        if output_format == "json":
            days = max(1, math.ceil((end - start).total_seconds() / 86400))
            return to_json({
                "viewType": view_type,
                "startDate": start_date,
                "endDate": end_date,
                "days": days,
                "events": [
                    {
                        "id": event.get("UID"),
                        "subject": event.get("SUMMARY", "").replace("\\,", ",").replace("\\;", ";"),
                        "start": event_start.isoformat().replace("+00:00", "Z"),
                        "end": event.get("DTEND"),
                        "location": event.get("LOCATION"),
                        "recurring": "RRULE" in event,
                        "source": path,
                    }
                    for event_start, path, event in events
                ],
            }), len(events)

        lines = [
            "BEGIN:VCALENDAR",
            "VERSION:2.0",
            "PRODID:-//Office Whisperer Calendar View//EN",
            "CALSCALE:GREGORIAN",
            "METHOD:PUBLISH",
            f"X-WR-CALNAME:Calendar View ({view_type})",
            "X-WR-TIMEZONE:UTC",
            f"X-WR-CALDESC:Calendar view from {ics_escape(start_date)} to {ics_escape(end_date)}",
        ]
        for _, _, event in events:
            lines.append("BEGIN:VEVENT")
            lines.extend(f"{key}:{value}" for key, value in event.items())
            lines.append("END:VEVENT")
        lines.append("END:VCALENDAR")
        return "\r\n".join(fold(line) for line in lines) + "\r\n", len(events)

    @staticmethod
    def _calendar_events(directory: Optional[str]) -> Iterator[tuple[str, dict]]:
        for path in _files_with_suffix(directory, ".ics"):
            try:
                with open(path, encoding="utf-8") as f:
                    text = f.read()
            except (OSError, UnicodeDecodeError) as e:
                logger.error(f"Error reading calendar file {path}: {e}")
                continue
            for event in parse_properties(text, "VEVENT"):
                yield path, event

    def search_contacts(self, query: str, search_in: Optional[list] = None, output_format: str = "vcf",
                        directory: Optional[str] = None) -> tuple[str, int]:
        """Match the vCards in `directory` against query (case-insensitive). Returns (text, matches)."""
        fields = search_in or ["name", "email", "company", "phone"]
        needle = query.lower()
        matches = []
        for path in _files_with_suffix(directory, ".vcf"):
            try:
                with open(path, encoding="utf-8") as f:
                    text = f.read()
            except (OSError, UnicodeDecodeError) as e:
                logger.error(f"Error reading contact file {path}: {e}")
                continue
            for card in parse_properties(text, "VCARD"):
                last, first = (card.get("N", "").split(";") + ["", ""])[:2]
                values = {
                    "name": card.get("FN", f"{first} {last}".strip()),
                    "email": card.get("EMAIL", ""),
                    "company": card.get("ORG", ""),
                    "phone": card.get("TEL", ""),
                }
                matched = [field for field in fields if needle in values.get(field, "").lower()]
                if matched:
                    matches.append((card, first, last, values, matched))

        if output_format == "json":
            return to_json({
                "query": query,
                "searchFields": fields,
                "results": [
                    {
                        "firstName": first,
                        "lastName": last,
                        "email": values["email"] or None,
                        "phone": values["phone"] or None,
                        "company": values["company"] or None,
                        "jobTitle": card.get("TITLE"),
                        "matchedFields": matched,
                    }
                    for card, first, last, values, matched in matches
                ],
            }), len(matches)

        cards = [
            build_vcf(first, last, values["email"] or None, values["phone"] or None, values["company"] or None,
                      card.get("TITLE"), None, note=f"Matched query: {query}")
            for card, first, last, values, matched in matches
        ]
        return "".join(cards), len(matches)

    # ── Outlook-only records ─────────────────────────────────────────

    def delegate_access(self, delegate_email: str, permissions: dict, receive_notifications: bool = True,
                        private_items_access: bool = False) -> str:
        return to_json({
            "delegateEmail": delegate_email,
            "permissions": permissions,
            "receiveNotifications": receive_notifications,
            "privateItemsAccess": private_items_access,
            "createdAt": now_iso(),
            "note": "Metadata for delegate permissions. In the Outlook client these are configured via "
                    "File > Account Settings > Delegate Access.",
        })

    def out_of_office(self, enabled: bool, message: Optional[str] = None, start_time: Optional[str] = None,
                      end_time: Optional[str] = None, external_audience: Optional[str] = None,
                      decline_new_meetings: bool = False, decline_message: Optional[str] = None) -> str:
        if start_time and end_time and parse_time(end_time) < parse_time(start_time):
            raise ValueError("endTime must not be before startTime")
        return to_json({
            "enabled": enabled,
            "startTime": start_time or "immediate",
            "endTime": end_time,
            "message": message,
            "externalAudience": external_audience or "none",
            "declineNewMeetings": decline_new_meetings,
            "declineMessage": decline_message,
            "createdAt": now_iso(),
            "note": "Out of office configuration. Apply via Exchange server settings or Outlook Rules.",
        })

    def create_notes(self, notes: list[dict]) -> str:
        stamp = timestamp_ms()
        return to_json([
            {
                "id": f"note-{stamp}-{index}",
                "subject": note.get("subject") or "Note",
                "body": note.get("body"),
                "color": note.get("color") or "yellow",
                "category": note.get("category"),
                "createdTime": note.get("createdTime") or now_iso(),
                "modifiedTime": now_iso(),
            }
            for index, note in enumerate(notes)
        ])

    def journal_entries(self, entries: list[dict]) -> str:
        stamp = timestamp_ms()
        records = []
        for index, entry in enumerate(entries):
            start = parse_time(entry["startTime"])
            duration = entry.get("duration") or 0
            end = start + timedelta(minutes=duration)
            records.append({
                "id": f"journal-{stamp}-{index}",
                "subject": entry.get("subject"),
                "entryType": entry.get("entryType"),
                "startTime": start.isoformat().replace("+00:00", "Z"),
                "endTime": end.isoformat().replace("+00:00", "Z"),
                "duration": duration,
                "description": entry.get("description"),
                "contacts": entry.get("contacts") or [],
                "categories": entry.get("categories") or [],
                "company": entry.get("company"),
                "createdAt": now_iso(),
            })
        return to_json(records)

    def rss_feeds(self, operation: str, feeds: Optional[list] = None) -> tuple[str, Optional[str]]:
        """Returns (config JSON, OPML text for the add operation)."""
        config = to_json({
            "operation": operation,
            "feeds": feeds or [],
            "timestamp": now_iso(),
            "note": "RSS feed management. Outlook stores RSS feeds as OPML files and syncs them to a special "
                    "RSS folder.",
        })
        opml = build_opml(feeds) if operation == "add" and feeds else None
        return config, opml

    def data_file(self, operation: str, file_path: str, file_type: Optional[str] = None,
                  display_name: Optional[str] = None, deliver_to_this_file: bool = False,
                  password: Optional[str] = None) -> str:
        return to_json({
            "operation": operation,
            "filePath": file_path,
            "fileType": file_type or "pst",
            "displayName": display_name,
            "deliverToThisFile": deliver_to_this_file,
            "encrypted": bool(password),
            "timestamp": now_iso(),
            "note": "PST/OST file metadata. Actual file operations require the Outlook client or a PST library.",
            "instructions": {
                "create": "Create a new PST file in Outlook via File > Account Settings > Data Files > Add",
                "open": "Open PST file via File > Open & Export > Open Outlook Data File",
                "close": 'Close PST file by right-clicking in folder pane and selecting "Close"',
                "compact": "Compact PST via File > Account Settings > Data Files > Settings > Compact Now",
                "info": "View file properties via right-click > Data File Properties",
            },
        })

    def quick_steps(self, steps: list[dict]) -> str:
        stamp = timestamp_ms()
        return to_json([
            {
                "id": f"quickstep-{stamp}-{index}",
                "name": step.get("name"),
                "description": step.get("description"),
                "actions": step.get("actions") or [],
                "shortcut": step.get("shortcut"),
                "createdAt": now_iso(),
            }
            for index, step in enumerate(steps)
        ])

    def conversation_view(self, enabled: bool = True, settings: Optional[dict] = None,
                          folders: Optional[list] = None) -> str:
        return to_json({
            "enabled": enabled,
            "settings": settings or {
                "showMessagesFromOtherFolders": True,
                "showSenders": True,
                "alwaysExpand": False,
                "useClassicIndentation": False,
                "highlightUnread": True,
            },
            "folders": folders or ["all"],
            "timestamp": now_iso(),
            "note": "Conversation view configuration. Apply in Outlook via View tab > Show as Conversations.",
        })

    def signature(self, signature: dict) -> tuple[str, str]:
        """(html, plain text) of one signature."""
        html = signature["html"]
        return html, signature.get("text") or strip_tags(html)

    def autocomplete(self, operation: str, entries: Optional[list] = None) -> str:
        if operation == "export":
            return to_json({
                "format": "NK2",
                "version": "2.0",
                "entries": entries or [],
                "exportedAt": now_iso(),
            })
        return to_json({
            "operation": operation,
            "entries": entries or [],
            "timestamp": now_iso(),
            "note": "Outlook autocomplete cache (.nk2 file) stores recently used email addresses. "
                    "Located at %APPDATA%\\Microsoft\\Outlook\\",
        })

    # ── mail merge ───────────────────────────────────────────────────

    def mail_merge(self, data_source: list[dict], template: Optional[dict] = None, filters: Optional[list] = None,
                   conditional_content: Optional[list] = None, attachments: Optional[list] = None,
                   send_options: Optional[dict] = None, smtp_config: Optional[dict] = None,
                   send: bool = True) -> dict:
        """Personalize the template per filtered record, and send when smtp_config is given and not in test mode.

        Returns a summary dict: totals, a sample of the first five emails and,
        when sent, the number of emails and batches.
        """
        template = template or {}
        send_options = send_options or {}
        records = [r for r in data_source if all(matches_filter(r, rule) for rule in filters or [])]

        emails = []
        for record in records:
            subject = fill_placeholders(template.get("subject") or "", record)
            body = fill_placeholders(template.get("body") or "", record)
            for conditional in conditional_content or []:
                if evaluate_condition(conditional["condition"], record):
                    body += "\n\n" + conditional["content"]
            chosen = [
                {"filename": a.get("filename"), "path": a.get("path")}
                for a in attachments or []
                if not a.get("conditional") or evaluate_condition(a["conditional"], record)
            ]
            to = record.get("email") or record.get("Email")
            if send_options.get("testMode") and send_options.get("testAddress"):
                to = send_options["testAddress"]
            emails.append({
                "to": to,
                "subject": subject,
                "body": body,
                "html": bool(template.get("html")),
                "attachments": chosen,
                "record": record,
            })

        batch_size = send_options.get("batchSize") or 50
        result: dict[str, Any] = {
            "totalRecords": len(data_source),
            "filteredRecords": len(records),
            "emailsGenerated": len(emails),
            "testMode": bool(send_options.get("testMode")),
            "testAddress": send_options.get("testAddress"),
            "batchSize": batch_size,
            "delayBetweenBatches": send_options.get("delayBetweenBatches") or 0,
            "emails": emails[:5],
        }

        if not (send and smtp_config and not send_options.get("testMode")):
            result["note"] = "Mail merge generated. Use SMTP configuration to send emails."
            return result

        sent = 0
        sender = sender_for(smtp_config)
        with smtp_session(smtp_config) as client:
            for start in range(0, len(emails), batch_size):
                for item in emails[start:start + batch_size]:
                    if not item["to"]:
                        logger.warning(f"Skipping record without email address: {item['record']}")
                        continue
                    message = build_message(sender, item["to"], item["subject"], item["body"],
                                            html=item["html"], attachments=item["attachments"])
                    client.send_message(message)
                    sent += 1
                if start + batch_size < len(emails) and send_options.get("delayBetweenBatches"):
                    time.sleep(send_options["delayBetweenBatches"])
        logger.info(f"Mail merge sent {sent} emails")
        result["sent"] = sent
        result["batches"] = -(-sent // batch_size)
        return result


def _files_with_suffix(directory: Optional[str], suffix: str) -> list[str]:
    directory = directory or os.getcwd()
    if not os.path.isdir(directory):
        return []
    return sorted(
        os.path.join(directory, name) for name in os.listdir(directory)
        if name.lower().endswith(suffix) and os.path.isfile(os.path.join(directory, name))
    )
