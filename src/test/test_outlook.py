"""Tests for Outlook artifacts, mail merge and the SMTP/IMAP paths (with mocked servers)."""

import json
from email.message import EmailMessage
from unittest.mock import MagicMock, patch

import pytest

from office_whisperer.errors import MailError
from office_whisperer.generators import OutlookGenerator
from office_whisperer.generators.outlook import (build_ics, build_rrule, build_vcf, evaluate_condition,
                                                 fill_placeholders, fold, matches_filter, parse_properties)

SMTP_CONFIG = {"host": "smtp.example.com", "port": 587, "auth": {"user": "me@example.com", "pass": "pw"}}
IMAP_CONFIG = {"host": "imap.example.com", "port": 993, "user": "me@example.com", "password": "pw"}


@pytest.fixture
def generator():
    return OutlookGenerator()


def raw_message(subject, body="Hello there", sender="alice@example.com"):
    message = EmailMessage()
    message["From"] = sender
    message["To"] = "me@example.com"
    message["Subject"] = subject
    message.set_content(body)
    return message.as_bytes()


def imap_client(messages):
    """Mock IMAP client serving {uid: (flags, raw)} for SEARCH and FETCH."""
    client = MagicMock()
    client.select.return_value = ("OK", [str(len(messages)).encode()])
    client.capabilities = ("IMAP4REV1", "MOVE")

    def uid(command, *args):
        if command == "SEARCH":
            return "OK", [" ".join(messages).encode()]
        if command == "FETCH":
            data = []
            for item in args[0].split(","):
                flags, raw = messages[item]
                data.append((f"{item} (UID {item} FLAGS ({flags}) BODY[] {{{len(raw)}}}".encode(), raw))
                data.append(b")")
            return "OK", data
        return "OK", [b""]

    client.uid.side_effect = uid
    return client


# ── calendar and contact formats ───────────────────────────────────────────


class TestICalendar:

    def test_meeting(self):
        ics = build_ics("Sync, weekly", "2025-03-10T09:00:00Z", "2025-03-10T10:00:00Z", location="Room 1",
                        attendees=[{"email": "bob@example.com", "name": "Bob"}], reminder=15)
        lines = ics.split("\r\n")
        assert ics.endswith("\r\n")
        assert lines[:3] == ["BEGIN:VCALENDAR", "VERSION:2.0", "PRODID:-//Office Whisperer//EN"]
        assert "METHOD:REQUEST" in lines
        assert "DTSTART:20250310T090000Z" in lines
        assert "DTEND:20250310T100000Z" in lines
        assert "SUMMARY:Sync\\, weekly" in lines
        assert 'ATTENDEE;ROLE=REQ-PARTICIPANT;CN="Bob":mailto:bob@example.com' in lines
        assert "TRIGGER:-PT15M" in lines
        assert lines[-2] == "END:VCALENDAR"
        assert any(line.startswith("UID:") and line.endswith("@officewhisperer.com") for line in lines)

    def test_offset_converted_to_utc(self):
        ics = build_ics("x", "2025-03-10T09:00:00+02:00", "2025-03-10T10:00:00+02:00")
        assert "DTSTART:20250310T070000Z" in ics

    def test_invalid_time(self):
        with pytest.raises(ValueError, match="Invalid date/time"):
            build_ics("x", "next tuesday", "2025-03-10T10:00:00Z")

    def test_long_lines_folded(self):
        line = "DESCRIPTION:" + "x" * 200
        folded = fold(line).split("\r\n")
        assert all(len(part) <= 75 for part in folded)
        assert all(part.startswith(" ") for part in folded[1:])
        assert "".join(p[1:] if i else p for i, p in enumerate(folded)) == line

    def test_folding_counts_octets(self):
        ics = build_ics("Réunion " + "é" * 80, "2025-03-10T09:00:00Z", "2025-03-10T10:00:00Z")
        lines = ics.split("\r\n")
        assert all(len(line.encode("utf-8")) <= 75 for line in lines)
        assert parse_properties(ics, "VEVENT")[0]["SUMMARY"] == "Réunion " + "é" * 80

    def test_parse_round_trips_folded_lines(self):
        ics = build_ics("x", "2025-03-10T09:00:00Z", "2025-03-10T10:00:00Z", description="d" * 150)
        event = parse_properties(ics, "VEVENT")[0]
        assert event["DESCRIPTION"] == "d" * 150

    def test_rrule(self):
        assert build_rrule({"frequency": "weekly", "interval": 2, "daysOfWeek": ["MO", "WE"], "count": 5}) == \
            "FREQ=WEEKLY;INTERVAL=2;BYDAY=MO,WE;COUNT=5"
        assert build_rrule({"frequency": "daily", "until": "2025-12-31T00:00:00Z"}) == \
            "FREQ=DAILY;UNTIL=20251231T000000Z"


class TestVCard:

    def test_fields(self):
        lines = build_vcf("Ada", "Lovelace", "ada@example.com", "555-0100", "Engines", "Analyst", "1 Main St") \
            .split("\r\n")
        assert lines[:4] == ["BEGIN:VCARD", "VERSION:3.0", "N:Lovelace;Ada;;;", "FN:Ada Lovelace"]
        assert "EMAIL;TYPE=INTERNET:ada@example.com" in lines
        assert "TEL;TYPE=WORK,VOICE:555-0100" in lines
        assert "ADR;TYPE=WORK:;;1 Main St;;;;" in lines
        assert lines[-2] == "END:VCARD"

    def test_optional_fields_omitted(self):
        vcf = build_vcf("Ada", "Lovelace")
        assert "EMAIL" not in vcf
        assert "ORG" not in vcf


# ── mail merge helpers ─────────────────────────────────────────────────────


class TestConditions:

    RECORD = {"tier": "premium", "amount": 150, "vip": False, "name": "Ada"}

    @pytest.mark.parametrize("condition,expected", [
        ("{{tier}} === 'premium'", True),
        ("{{tier}} !== 'premium'", False),
        ("{{tier}} === 'premium' && {{amount}} > 100", True),
        ("{{amount}} < 100 || {{name}} == 'Ada'", True),
        ("!{{vip}}", True),
        ("{{missing}} === undefined", True),
        ("{{amount}} >= 150 and {{amount}} <= 150", True),
    ])
    def test_evaluates(self, condition, expected):
        assert evaluate_condition(condition, self.RECORD) is expected

    @pytest.mark.parametrize("condition", [
        "__import__('os').system('true')",
        "{{tier}}.upper() == 'PREMIUM'",
        "open('/etc/passwd')",
        "{{amount}} > ",
        "{{name}} > 3",
    ])
    def test_unsupported_is_false(self, condition):
        assert evaluate_condition(condition, self.RECORD) is False

    @pytest.mark.parametrize("rule,expected", [
        ({"field": "tier", "operator": "equals", "value": "premium"}, True),
        ({"field": "tier", "operator": "notEquals", "value": "premium"}, False),
        ({"field": "name", "operator": "contains", "value": "d"}, True),
        ({"field": "amount", "operator": "greaterThan", "value": 100}, True),
        ({"field": "amount", "operator": "lessThan", "value": "100"}, False),
        ({"field": "name", "operator": "startsWith", "value": "A"}, True),
        ({"field": "name", "operator": "endsWith", "value": "x"}, False),
        ({"field": "name", "operator": "greaterThan", "value": 1}, False),
    ])
    def test_filters(self, rule, expected):
        assert matches_filter(self.RECORD, rule) is expected

    def test_placeholders(self):
        assert fill_placeholders("Hi {{name}}, {{name}}! {{other}}", {"name": "Ada"}) == "Hi Ada, Ada! {{other}}"


class TestMailMerge:

    DATA = [
        {"name": "Ada", "email": "ada@example.com", "tier": "premium", "amount": 150},
        {"name": "Bob", "email": "bob@example.com", "tier": "basic", "amount": 50},
        {"name": "Cy", "Email": "cy@example.com", "tier": "premium", "amount": 300},
    ]
    TEMPLATE = {"subject": "Hello {{name}}", "body": "Your tier: {{tier}}"}

    def test_generates_without_sending(self, generator):
        result = generator.mail_merge(self.DATA, self.TEMPLATE,
                                      filters=[{"field": "amount", "operator": "greaterThan", "value": 100}],
                                      conditional_content=[{"condition": "{{amount}} > 200", "content": "Thanks!"}])
        assert (result["totalRecords"], result["filteredRecords"], result["emailsGenerated"]) == (3, 2, 2)
        first, second = result["emails"]
        assert first["subject"] == "Hello Ada"
        assert first["body"] == "Your tier: premium"
        assert second["to"] == "cy@example.com"
        assert second["body"].endswith("\n\nThanks!")
        assert "sent" not in result

    def test_conditional_attachments(self, generator):
        result = generator.mail_merge(self.DATA[:2], self.TEMPLATE, attachments=[
            {"filename": "vip.pdf", "path": "/tmp/vip.pdf", "conditional": "{{tier}} === 'premium'"},
            {"filename": "all.pdf", "path": "/tmp/all.pdf"},
        ])
        assert [a["filename"] for a in result["emails"][0]["attachments"]] == ["vip.pdf", "all.pdf"]
        assert [a["filename"] for a in result["emails"][1]["attachments"]] == ["all.pdf"]

    def test_sample_limited_to_five(self, generator):
        data = [{"email": f"u{i}@example.com"} for i in range(8)]
        assert len(generator.mail_merge(data, self.TEMPLATE)["emails"]) == 5

    def test_test_mode_redirects_and_does_not_send(self, generator):
        with patch("smtplib.SMTP") as smtp:
            result = generator.mail_merge(self.DATA, self.TEMPLATE, smtp_config=SMTP_CONFIG,
                                          send_options={"testMode": True, "testAddress": "qa@example.com"})
        smtp.assert_not_called()
        assert {e["to"] for e in result["emails"]} == {"qa@example.com"}

    def test_sends_in_batches(self, generator):
        with patch("smtplib.SMTP") as smtp:
            result = generator.mail_merge(self.DATA, self.TEMPLATE, smtp_config=SMTP_CONFIG,
                                          send_options={"batchSize": 2})
        client = smtp.return_value
        assert client.send_message.call_count == 3
        assert (result["sent"], result["batches"]) == (3, 2)
        client.quit.assert_called_once()


# ── SMTP ───────────────────────────────────────────────────────────────────


class TestSendEmail:

    def test_without_config_describes(self, generator):
        text = generator.send_email("bob@example.com", "Hi", "Body text")
        assert text.startswith("Email configuration:\nTo: bob@example.com\nSubject: Hi")

    def test_starttls_login_send(self, generator, tmp_path):
        attachment = tmp_path / "notes.txt"
        attachment.write_text("attached")
        with patch("smtplib.SMTP") as smtp:
            client = smtp.return_value
            client.has_extn.return_value = True
            text = generator.send_email(["bob@example.com", "cy@example.com"], "Hi", "Body", priority="high",
                                        attachments=[{"filename": "notes.txt", "path": str(attachment)}],
                                        smtp_config=SMTP_CONFIG)

        smtp.assert_called_once_with("smtp.example.com", 587, timeout=30)
        client.starttls.assert_called_once()
        client.login.assert_called_once_with("me@example.com", "pw")
        message = client.send_message.call_args[0][0]
        assert message["To"] == "bob@example.com, cy@example.com"
        assert message["From"] == "me@example.com"
        assert message["X-Priority"] == "1 (Highest)"
        assert [part.get_filename() for part in message.iter_attachments()] == ["notes.txt"]
        assert text.startswith("Email sent successfully!")
        assert "Attachments: 1" in text
        client.quit.assert_called_once()

    def test_port_465_uses_ssl(self, generator):
        with patch("smtplib.SMTP_SSL") as smtp_ssl, patch("smtplib.SMTP") as smtp:
            generator.send_email("bob@example.com", "Hi", "Body", smtp_config={"host": "h", "port": 465})
        smtp_ssl.assert_called_once()
        smtp.assert_not_called()

    def test_connection_failure(self, generator):
        with patch("smtplib.SMTP", side_effect=OSError("connection refused")):
            with pytest.raises(MailError, match="Failed to send email: connection refused"):
                generator.send_email("bob@example.com", "Hi", "Body", smtp_config=SMTP_CONFIG)


# ── IMAP ───────────────────────────────────────────────────────────────────


class TestMailbox:

    def test_read_without_config_describes(self, generator):
        assert generator.read_emails(limit=5).startswith("Email reading configuration:\nFolder: INBOX\nLimit: 5")

    def test_read_newest_first(self, generator):
        client = imap_client({"1": ("\\Seen", raw_message("First")), "2": ("", raw_message("Second"))})
        with patch("imaplib.IMAP4_SSL", return_value=client):
            emails = json.loads(generator.read_emails(imap_config=IMAP_CONFIG))
        assert [e["subject"] for e in emails] == ["Second", "First"]
        assert [e["unread"] for e in emails] == [True, False]
        assert emails[0]["snippet"] == "Hello there"
        client.login.assert_called_once_with("me@example.com", "pw")
        client.logout.assert_called_once()

    def test_plain_imap_when_tls_disabled(self, generator):
        client = imap_client({})
        with patch("imaplib.IMAP4", return_value=client) as plain:
            generator.read_emails(imap_config={**IMAP_CONFIG, "tls": False, "port": 143})
        plain.assert_called_once_with("imap.example.com", 143, timeout=30)

    def test_search_builds_or_criteria(self, generator):
        client = imap_client({"7": ("", raw_message("Invoice"))})
        with patch("imaplib.IMAP4_SSL", return_value=client):
            result = json.loads(generator.search_emails("invoice", ["subject", "from"], imap_config=IMAP_CONFIG))
        search_call = client.uid.call_args_list[0]
        assert search_call.args == ("SEARCH", "CHARSET", "UTF-8", "OR", "SUBJECT", b'"invoice"', "FROM", b'"invoice"')
        assert result["count"] == 1
        assert result["results"][0]["id"] == "7"

    def test_mark_read_stores_seen_flag(self, generator):
        client = imap_client({})
        with patch("imaplib.IMAP4_SSL", return_value=client):
            text = generator.mark_read(["3", "4"], True, imap_config=IMAP_CONFIG)
        client.uid.assert_called_with("STORE", "3,4", "+FLAGS", "(\\Seen)")
        assert text.endswith("Marked 2 email(s) as read")

    def test_failed_select_raises(self, generator):
        client = imap_client({})
        client.select.return_value = ("NO", [b"no such mailbox"])
        with patch("imaplib.IMAP4_SSL", return_value=client):
            with pytest.raises(MailError, match="no such mailbox"):
                generator.read_emails(folder="Missing", imap_config=IMAP_CONFIG)
        client.logout.assert_called_once()


# ── tool handlers ──────────────────────────────────────────────────────────


class TestOutlookTools:

    def test_meeting_file_then_calendar_view(self, call_tool, tmp_path):
        text = call_tool("outlook_create_meeting", subject="Planning", startTime="2025-03-10T09:00:00Z",
                         endTime="2025-03-10T10:00:00Z", outputPath=str(tmp_path))
        files = list(tmp_path.glob("meeting_*.ics"))
        assert len(files) == 1
        assert str(files[0]) in text
        (tmp_path / "later.ics").write_text(build_ics("Later", "2025-05-01T09:00:00Z", "2025-05-01T10:00:00Z"))

        view = call_tool("outlook_calendar_view", startDate="2025-03-01T00:00:00Z", endDate="2025-03-31T00:00:00Z",
                         viewType="month", outputFormat="json", outputPath=str(tmp_path))
        assert "🗓️ **Events:** 1" in view
        events = json.loads(view.split("\n\n", 2)[2])["events"]
        assert [e["subject"] for e in events] == ["Planning"]

    def test_calendar_view_rejects_reversed_range(self, call_tool, tmp_path):
        with pytest.raises(ValueError):
            call_tool("outlook_calendar_view", startDate="2025-03-31T00:00:00Z", endDate="2025-03-01T00:00:00Z",
                      viewType="week", outputPath=str(tmp_path))

    def test_contact_file_then_search(self, call_tool, tmp_path):
        call_tool("outlook_add_contact", firstName="Ada", lastName="Lovelace", email="ada@example.com",
                  company="Engines", outputPath=str(tmp_path))
        assert (tmp_path / "contact_Lovelace_Ada.vcf").exists()

        text = call_tool("outlook_search_contacts", query="ENGINES", outputFormat="json", outputPath=str(tmp_path))
        results = json.loads(text.split("\n\n", 2)[2])["results"]
        assert results[0]["firstName"] == "Ada"
        assert results[0]["matchedFields"] == ["company"]

        miss = call_tool("outlook_search_contacts", query="nobody", outputPath=str(tmp_path))
        assert "📇 **Matches:** 0" in miss

    def test_task_json(self, call_tool, tmp_path):
        call_tool("outlook_create_task", subject="File report", dueDate="2025-04-01", outputPath=str(tmp_path))
        task = json.loads(next(tmp_path.glob("task_*.json")).read_text())
        assert task["subject"] == "File report"
        assert task["priority"] == "normal"
        assert task["status"] == "notStarted"

    def test_send_without_config(self, call_tool):
        text = call_tool("outlook_send_email", to="bob@example.com", subject="Hi", body="Body")
        assert text.startswith("✅ **Email processed!**\n\nEmail configuration:")

    def test_json_result_saved_to_output_path(self, call_tool, tmp_path):
        target = tmp_path / "delegate.json"
        text = call_tool("outlook_delegate_access", delegateEmail="pa@example.com",
                         permissions={"calendar": "editor"}, outputPath=str(target))
        assert text == f"Delegate access configuration created for pa@example.com. Saved to: {target}"
        assert json.loads(target.read_text())["delegateEmail"] == "pa@example.com"

    def test_json_result_inline_without_output_path(self, call_tool):
        text = call_tool("outlook_delegate_access", delegateEmail="pa@example.com", permissions={})
        assert json.loads(text)["delegateEmail"] == "pa@example.com"

    def test_mail_merge_saved(self, call_tool, tmp_path):
        target = tmp_path / "merge.json"
        text = call_tool("outlook_mail_merge", dataSource=[{"email": "a@example.com", "name": "A"}],
                         template={"subject": "Hi {{name}}", "body": "x"}, outputPath=str(target))
        assert text.startswith("Mail merge completed. Generated 1 email(s) from 1 filtered record(s).")
        assert json.loads(target.read_text())["emails"][0]["subject"] == "Hi A"
