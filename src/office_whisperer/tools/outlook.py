'''
Outlook tools: 33 handlers over OutlookGenerator.

Calendar items, contacts and Outlook-only records are written as files; mail
operations return the generator's text. Where a tool's result is a JSON
document, outputPath names the file it is saved to and the JSON is returned
inline when outputPath is absent.
'''

import json
import os
from typing import Optional

from ..generators.outlook import timestamp_ms
from ..media import read_source
from ..registry import tool
from ..schema import IMAP_CONFIG, SMTP_CONFIG, array, boolean, integer, number, obj, object_schema, string, \
    string_or_list
from .base import DocumentTools, count

import logging
logger = logging.getLogger(__name__)

OUTPUT_DIRECTORY = string("Optional output directory")
OUTPUT_FILE = string("Optional file to save the result to (default: returned inline)")
FOLDER = string("IMAP folder (default INBOX)")
MESSAGE_IDS = array(string(), "IMAP message UIDs")
ATTENDEES = array(obj({"email": string(), "name": string(), "required": boolean()}, required=["email"]))
ATTACHMENTS = array(obj({"filename": string(), "path": string(), "content": string()}, required=["filename"]))


def _mailbox_schema(properties: dict, required: Optional[list] = None) -> dict:
    return object_schema({**properties, "folder": FOLDER, "imapConfig": IMAP_CONFIG}, required=required)


class OutlookTools(DocumentTools):

    def emit(self, args: dict, text: str, saved: str, label: str = "Saved to") -> str:
        """Save text to outputPath when given and return `saved`, else return text."""
        if not args.get("outputPath"):
            return text
        path = self.paths.resolve(args["outputPath"])
        self.write_text(path, text)
        return f"{saved}. {label}: {path}"

    def attachments(self, attachments: Optional[list]) -> Optional[list]:
        if not attachments:
            return attachments
        return [{**a, "path": self.paths.source(a["path"])} if a.get("path") else a for a in attachments]

    def scan_directory(self, args: dict) -> str:
        return self.paths.resolve(args.get("outputPath") or self.paths.root)

    # ── core ─────────────────────────────────────────────────────────

    @tool("outlook_send_email", "📧 Send emails with attachments", object_schema({
        "to": string_or_list("Recipient address or list of addresses"),
        "subject": string(),
        "body": string(),
        "cc": string_or_list(),
        "bcc": string_or_list(),
        "attachments": ATTACHMENTS,
        "html": boolean(),
        "priority": string(enum=["high", "normal", "low"]),
        "smtpConfig": SMTP_CONFIG,
    }, required=["to", "subject", "body"]))
    def outlook_send_email(self, args: dict) -> str:
        result = self.generator.send_email(
            args["to"], args["subject"], args["body"], cc=args.get("cc"), bcc=args.get("bcc"),
            attachments=self.attachments(args.get("attachments")), html=bool(args.get("html")),
            priority=args.get("priority"), smtp_config=args.get("smtpConfig"))
        return f"✅ **Email processed!**\n\n{result}"

    @tool("outlook_create_meeting", "📅 Create calendar events with attendees", object_schema({
        "subject": string(),
        "startTime": string("ISO 8601 start (naive values are local time)"),
        "endTime": string("ISO 8601 end"),
        "location": string(),
        "attendees": ATTENDEES,
        "description": string(),
        "reminder": number("Minutes before the start"),
        "outputPath": OUTPUT_DIRECTORY,
    }, required=["subject", "startTime", "endTime"]))
    def outlook_create_meeting(self, args: dict) -> str:
        path = self.created(args, f"meeting_{timestamp_ms()}.ics")
        self.save(path, lambda: self.generator.create_meeting(
            args["subject"], args["startTime"], args["endTime"], location=args.get("location"),
            description=args.get("description"), attendees=args.get("attendees"), reminder=args.get("reminder")))
        return (f"✅ **Meeting created!**\n\n📅 **Subject:** {args['subject']}\n⏰ **Start:** {args['startTime']}\n"
                f"📁 **ICS file:** {path}\n\nImport this file into Outlook/Google Calendar.")

    @tool("outlook_add_contact", "👤 Add contact to address book", object_schema({
        "firstName": string(),
        "lastName": string(),
        "email": string(),
        "phone": string(),
        "company": string(),
        "jobTitle": string(),
        "address": string(),
        "outputPath": OUTPUT_DIRECTORY,
    }, required=["firstName", "lastName"]))
    def outlook_add_contact(self, args: dict) -> str:
        path = self.created(args, f"contact_{args['lastName']}_{args['firstName']}.vcf")
        self.save(path, lambda: self.generator.add_contact(
            args["firstName"], args["lastName"], args.get("email"), args.get("phone"), args.get("company"),
            args.get("jobTitle"), args.get("address")))
        email_line = f"📧 **Email:** {args['email']}\n" if args.get("email") else ""
        return (f"✅ **Contact created!**\n\n👤 **Name:** {args['firstName']} {args['lastName']}\n{email_line}"
                f"📁 **VCF file:** {path}\n\nImport this file into Outlook/Contacts app.")

    @tool("outlook_create_task", "✅ Create Outlook task", object_schema({
        "subject": string(),
        "dueDate": string(),
        "priority": string(enum=["high", "normal", "low"]),
        "status": string(enum=["notStarted", "inProgress", "completed", "waiting", "deferred"]),
        "category": string(),
        "reminder": string(),
        "notes": string(),
        "outputPath": OUTPUT_DIRECTORY,
    }, required=["subject"]))
    def outlook_create_task(self, args: dict) -> str:
        path = self.created(args, f"task_{timestamp_ms()}.json")
        self.save(path, lambda: self.generator.create_task(
            args["subject"], args.get("dueDate"), args.get("priority"), args.get("status"), args.get("category"),
            args.get("reminder"), args.get("notes")))
        due_line = f"📅 **Due:** {args['dueDate']}\n" if args.get("dueDate") else ""
        return (f"✅ **Task created!**\n\n✅ **Subject:** {args['subject']}\n{due_line}"
                f"🔢 **Priority:** {args.get('priority') or 'normal'}\n📁 **JSON file:** {path}")

    @tool("outlook_set_rule", "⚙️ Create inbox rule", object_schema({
        "name": string(),
        "conditions": array(obj({
            "type": string(enum=["from", "subject", "body", "recipient", "attachment"]),
            "value": string(),
            "operator": string(enum=["contains", "equals", "startsWith", "endsWith"]),
        }, required=["type"])),
        "actions": array(obj({
            "type": string(enum=["move", "copy", "delete", "forward", "flag", "category"]),
            "value": string(),
        }, required=["type"])),
        "outputPath": OUTPUT_DIRECTORY,
    }, required=["name", "conditions", "actions"]))
    def outlook_set_rule(self, args: dict) -> str:
        path = self.created(args, f"rule_{timestamp_ms()}.json")
        self.save(path, lambda: self.generator.set_rule(args["name"], args["conditions"], args["actions"]))
        return (f"✅ **Inbox rule created!**\n\n⚙️ **Name:** {args['name']}\n"
                f"🔧 **Conditions:** {len(args['conditions'])}\n🎯 **Actions:** {len(args['actions'])}\n"
                f"📁 **JSON file:** {path}")

    # ── reading and searching ────────────────────────────────────────

    @tool("outlook_read_emails", "📥 Read emails from a folder", _mailbox_schema({
        "limit": integer("Newest messages to return (default 10)"),
        "unreadOnly": boolean(),
        "since": string("Only messages since this date"),
    }))
    def outlook_read_emails(self, args: dict) -> str:
        return self.generator.read_emails(
            args.get("folder") or "INBOX", args.get("limit") or 10, bool(args.get("unreadOnly")), args.get("since"),
            args.get("imapConfig"))

    @tool("outlook_search_emails", "🔍 Search emails by subject, sender, body or recipient", _mailbox_schema({
        "query": string(),
        "searchIn": array(string(enum=["subject", "from", "body", "to"])),
        "limit": integer("Maximum results (default 50)"),
        "since": string(),
    }, ["query"]))
    def outlook_search_emails(self, args: dict) -> str:
        return self.generator.search_emails(
            args["query"], args.get("searchIn"), args.get("folder") or "INBOX", args.get("limit") or 50,
            args.get("since"), args.get("imapConfig"))

    @tool("outlook_recurring_meeting", "🔁 Create a recurring meeting", object_schema({
        "subject": string(),
        "startTime": string(),
        "endTime": string(),
        "recurrence": obj({
            "frequency": string(enum=["daily", "weekly", "monthly", "yearly"]),
            "interval": integer(),
            "daysOfWeek": array(string(enum=["MO", "TU", "WE", "TH", "FR", "SA", "SU"])),
            "until": string(),
            "count": integer(),
        }, required=["frequency"]),
        "location": string(),
        "attendees": ATTENDEES,
        "description": string(),
        "outputPath": OUTPUT_DIRECTORY,
    }, required=["subject", "startTime", "endTime", "recurrence"]))
    def outlook_recurring_meeting(self, args: dict) -> str:
        path = self.created(args, f"recurring_meeting_{timestamp_ms()}.ics")
        self.save(path, lambda: self.generator.create_recurring_meeting(
            args["subject"], args["startTime"], args["endTime"], args["recurrence"], location=args.get("location"),
            attendees=args.get("attendees"), description=args.get("description")))
        recurrence = args["recurrence"]
        return (f"✅ **Recurring meeting created!**\n\n📅 **Subject:** {args['subject']}\n"
                f"🔁 **Repeats:** {recurrence['frequency']} (every {recurrence.get('interval') or 1})\n"
                f"📁 **ICS file:** {path}")

    @tool("outlook_email_template", "📝 Save an email template with placeholders", object_schema({
        "name": string(),
        "subject": string(),
        "body": string("Body with {{placeholder}} markers"),
        "html": boolean(),
        "placeholders": array(string()),
        "outputPath": OUTPUT_DIRECTORY,
    }, required=["name", "subject", "body"]))
    def outlook_email_template(self, args: dict) -> str:
        path = self.created(args, f"template_{args['name']}.json")
        self.save(path, lambda: self.generator.email_template(
            args["name"], args["subject"], args["body"], bool(args.get("html")), args.get("placeholders")))
        return (f"✅ **Email template saved!**\n\n📝 **Name:** {args['name']}\n"
                f"🏷️ **Placeholders:** {count(args.get('placeholders'))}\n📁 **JSON file:** {path}")

    # ── mailbox changes ──────────────────────────────────────────────

    @tool("outlook_mark_read", "👁️ Mark emails read or unread", _mailbox_schema({
        "messageIds": MESSAGE_IDS,
        "markAsRead": boolean(),
    }, ["messageIds", "markAsRead"]))
    def outlook_mark_read(self, args: dict) -> str:
        return self.generator.mark_read(args["messageIds"], args["markAsRead"], args.get("folder") or "INBOX",
                                        args.get("imapConfig"))

    @tool("outlook_archive_email", "🗄️ Archive emails", _mailbox_schema({
        "messageIds": MESSAGE_IDS,
        "archiveFolder": string("Destination folder (default Archive)"),
    }, ["messageIds"]))
    def outlook_archive_email(self, args: dict) -> str:
        return self.generator.archive_email(args["messageIds"], args.get("archiveFolder") or "Archive",
                                            args.get("folder") or "INBOX", args.get("imapConfig"))

    @tool("outlook_calendar_view", "🗓️ Calendar view of saved meetings in a date range", object_schema({
        "startDate": string(),
        "endDate": string(),
        "viewType": string(enum=["day", "week", "month", "agenda"]),
        "outputFormat": string(enum=["ics", "json"]),
        "outputPath": string("Directory holding the .ics files (default: output root)"),
    }, required=["startDate", "endDate", "viewType"]))
    def outlook_calendar_view(self, args: dict) -> str:
        text, events = self.generator.calendar_view(
            args["startDate"], args["endDate"], args["viewType"], args.get("outputFormat") or "ics",
            self.scan_directory(args))
        return f"✅ **Calendar view ready!**\n\n🗓️ **Events:** {events}\n\n{text}"

    @tool("outlook_search_contacts", "📇 Search saved contacts", object_schema({
        "query": string(),
        "searchIn": array(string(enum=["name", "email", "company", "phone"])),
        "outputFormat": string(enum=["vcf", "json"]),
        "outputPath": string("Directory holding the .vcf files (default: output root)"),
    }, required=["query"]))
    def outlook_search_contacts(self, args: dict) -> str:
        text, matches = self.generator.search_contacts(
            args["query"], args.get("searchIn"), args.get("outputFormat") or "vcf", self.scan_directory(args))
        return f"✅ **Contact search complete!**\n\n📇 **Matches:** {matches}\n\n{text}"

    @tool("outlook_read_full_email", "📖 Read full messages with bodies and attachments", _mailbox_schema({
        "messageIds": MESSAGE_IDS,
        "includeAttachments": boolean(),
        "includeHeaders": boolean(),
        "includeRawContent": boolean(),
        "markAsRead": boolean(),
        "outputPath": OUTPUT_FILE,
    }, ["messageIds"]))
    def outlook_read_full_email(self, args: dict) -> str:
        text, retrieved = self.generator.read_full_email(
            args["messageIds"], args.get("folder") or "INBOX", args.get("includeAttachments", True),
            args.get("includeHeaders", True), bool(args.get("includeRawContent")), bool(args.get("markAsRead")),
            args.get("imapConfig"))
        if not args.get("imapConfig"):
            return text
        return self.emit(args, text, f"Retrieved {retrieved} email(s)")

    @tool("outlook_delete_email", "🗑️ Delete emails", _mailbox_schema({
        "messageIds": MESSAGE_IDS,
        "permanent": boolean("Expunge instead of only flagging"),
    }, ["messageIds"]))
    def outlook_delete_email(self, args: dict) -> str:
        return self.generator.delete_email(args["messageIds"], args.get("folder") or "INBOX",
                                           bool(args.get("permanent")), args.get("imapConfig"))

    @tool("outlook_move_email", "📦 Move emails between folders", object_schema({
        "messageIds": MESSAGE_IDS,
        "toFolder": string(),
        "fromFolder": string("Source folder (default INBOX)"),
        "createFolder": boolean("Create the destination when missing"),
        "imapConfig": IMAP_CONFIG,
    }, required=["messageIds", "toFolder"]))
    def outlook_move_email(self, args: dict) -> str:
        return self.generator.move_email(args["messageIds"], args["toFolder"], args.get("fromFolder") or "INBOX",
                                         bool(args.get("createFolder")), args.get("imapConfig"))

    @tool("outlook_create_folder", "📁 Create a mail folder", object_schema({
        "folderName": string(),
        "parent": string(),
        "imapConfig": IMAP_CONFIG,
    }, required=["folderName"]))
    def outlook_create_folder(self, args: dict) -> str:
        return self.generator.create_folder(args["folderName"], args.get("parent"), args.get("imapConfig"))

    @tool("outlook_shared_mailbox", "👥 Access a shared mailbox", _mailbox_schema({
        "sharedMailbox": string(),
        "operation": string(enum=["list", "read", "send", "manage"]),
        "emailData": obj({"to": string_or_list(), "subject": string(), "body": string(), "html": boolean()},
                         required=["to"]),
        "smtpConfig": SMTP_CONFIG,
        "outputPath": OUTPUT_FILE,
    }, ["sharedMailbox", "operation"]))
    def outlook_shared_mailbox(self, args: dict) -> str:
        text, listing = self.generator.shared_mailbox(
            args["sharedMailbox"], args["operation"], args.get("folder") or "INBOX", args.get("emailData"),
            args.get("imapConfig"), args.get("smtpConfig"))
        if listing is None:
            return text
        return self.emit(args, text, f"Listed {listing['messageCount']} messages")

    # ── Outlook-only records ─────────────────────────────────────────

    @tool("outlook_delegate_access", "🔑 Grant delegate access", object_schema({
        "delegateEmail": string(),
        "permissions": obj({folder: string("none, reviewer, author or editor")
                            for folder in ("calendar", "tasks", "inbox", "contacts", "notes")}),
        "receiveNotifications": boolean(),
        "privateItemsAccess": boolean(),
        "outputPath": OUTPUT_FILE,
    }, required=["delegateEmail", "permissions"]))
    def outlook_delegate_access(self, args: dict) -> str:
        text = self.generator.delegate_access(args["delegateEmail"], args["permissions"],
                                              args.get("receiveNotifications", True),
                                              bool(args.get("privateItemsAccess")))
        return self.emit(args, text, f"Delegate access configuration created for {args['delegateEmail']}")

    @tool("outlook_out_of_office", "🏖️ Configure automatic replies", object_schema({
        "enabled": boolean(),
        "message": string(),
        "startTime": string(),
        "endTime": string(),
        "externalAudience": string(enum=["none", "known", "all"]),
        "declineNewMeetings": boolean(),
        "declineMessage": string(),
        "outputPath": OUTPUT_FILE,
    }, required=["enabled"]))
    def outlook_out_of_office(self, args: dict) -> str:
        text = self.generator.out_of_office(
            args["enabled"], args.get("message"), args.get("startTime"), args.get("endTime"),
            args.get("externalAudience"), bool(args.get("declineNewMeetings")), args.get("declineMessage"))
        return self.emit(args, text, f"Out of office settings {'enabled' if args['enabled'] else 'disabled'}")

    @tool("outlook_create_notes", "🗒️ Create Outlook notes", object_schema({
        "notes": array(obj({"subject": string(), "body": string(),
                            "color": string(enum=["blue", "green", "pink", "yellow", "white"]),
                            "category": string(), "createdTime": string()}, required=["body"])),
        "outputPath": OUTPUT_FILE,
    }, required=["notes"]))
    def outlook_create_notes(self, args: dict) -> str:
        text = self.generator.create_notes(args["notes"])
        saved = self.emit(args, text, f"Created {len(args['notes'])} note(s)")
        if args.get("outputPath"):
            saved += ("\n\nNote: Outlook notes are proprietary. Import this JSON into Outlook using a custom script "
                      "or convert to sticky notes format.")
        return saved

    @tool("outlook_journal_entry", "📓 Create journal entries", object_schema({
        "entries": array(obj({"subject": string(), "entryType": string(), "startTime": string(),
                              "duration": integer("Minutes"), "description": string(),
                              "contacts": array(string()), "categories": array(string()), "company": string()},
                             required=["subject", "startTime"])),
        "outputPath": OUTPUT_FILE,
    }, required=["entries"]))
    def outlook_journal_entry(self, args: dict) -> str:
        text = self.generator.journal_entries(args["entries"])
        saved = self.emit(args, text, f"Created {len(args['entries'])} journal entr(ies)")
        if args.get("outputPath"):
            saved += "\n\nNote: Journal entries can be imported into Outlook via File > Import/Export."
        return saved

    @tool("outlook_rss_feeds", "📰 Manage RSS feed subscriptions", object_schema({
        "operation": string(enum=["add", "remove", "list", "update"]),
        "feeds": array(obj({"name": string(), "url": string(), "folder": string(),
                            "updateInterval": integer("Minutes"), "downloadEnclosures": boolean()},
                           required=["url"])),
        "outputPath": OUTPUT_FILE,
    }, required=["operation"]))
    def outlook_rss_feeds(self, args: dict) -> str:
        text, opml = self.generator.rss_feeds(args["operation"], args.get("feeds"))
        if opml is not None:
            name = f"{args['outputPath']}.opml" if args.get("outputPath") else "rss-feeds.opml"
            path = self.paths.resolve(name) if args.get("outputPath") else self.paths.in_directory(name)
            self.write_text(path, opml)
            return (f"Added {len(args['feeds'])} RSS feed(s). OPML file saved to: {path}\n\n"
                    "Import this OPML file in Outlook via File > Account Settings > RSS Feeds > New.")
        return self.emit(args, text, f"RSS feed operation: {args['operation']}")

    @tool("outlook_data_file", "💾 Manage PST/OST data files", object_schema({
        "operation": string(enum=["create", "open", "close", "compact", "info"]),
        "filePath": string(),
        "fileType": string(enum=["pst", "ost"]),
        "displayName": string(),
        "deliverToThisFile": boolean(),
        "password": string(),
        "outputPath": OUTPUT_FILE,
    }, required=["operation", "filePath"]))
    def outlook_data_file(self, args: dict) -> str:
        text = self.generator.data_file(args["operation"], args["filePath"], args.get("fileType"),
                                        args.get("displayName"), bool(args.get("deliverToThisFile")),
                                        args.get("password"))
        return self.emit(args, text, f"Data file operation: {args['operation']}", "Metadata saved to")

    @tool("outlook_quick_steps", "⚡ Create Quick Steps", object_schema({
        "quickSteps": array(obj({"name": string(), "description": string(),
                                 "actions": array(obj({"type": string(), "value": string()})),
                                 "shortcut": string()}, required=["name"])),
        "outputPath": OUTPUT_FILE,
    }, required=["quickSteps"]))
    def outlook_quick_steps(self, args: dict) -> str:
        text = self.generator.quick_steps(args["quickSteps"])
        saved = self.emit(args, text, f"Created {len(args['quickSteps'])} Quick Step(s)")
        if args.get("outputPath"):
            saved += "\n\nNote: Quick Steps are created in Outlook via Home > Quick Steps > Create New."
        return saved

    @tool("outlook_conversation_view", "💬 Configure conversation view", object_schema({
        "enable": boolean("Default true"),
        "settings": obj({"showMessagesFromOtherFolders": boolean(), "showSenders": boolean(),
                         "alwaysExpand": boolean(), "useClassicIndentation": boolean(),
                         "highlightUnread": boolean()}),
        "folders": array(string()),
        "outputPath": OUTPUT_FILE,
    }))
    def outlook_conversation_view(self, args: dict) -> str:
        enabled = args.get("enable", True)
        text = self.generator.conversation_view(enabled, args.get("settings"), args.get("folders"))
        return self.emit(args, text, f"Conversation view {'enabled' if enabled else 'disabled'}", "Config saved to")

    @tool("outlook_cleanup_messages", "🧹 Clean up redundant conversation messages", _mailbox_schema({
        "scope": string(enum=["folder", "conversation", "selectedMessages"]),
        "deleteRedundant": boolean(),
        "messageIds": MESSAGE_IDS,
    }))
    def outlook_cleanup_messages(self, args: dict) -> str:
        return self.generator.cleanup_messages(args.get("scope") or "folder", args.get("folder") or "INBOX",
                                               bool(args.get("deleteRedundant")), args.get("messageIds"),
                                               args.get("imapConfig"))

    @tool("outlook_ignore_conversation", "🔕 Ignore or restore conversations", object_schema({
        "conversationIds": array(string()),
        "restore": boolean(),
        "deleteExisting": boolean(),
        "imapConfig": IMAP_CONFIG,
    }, required=["conversationIds"]))
    def outlook_ignore_conversation(self, args: dict) -> str:
        return self.generator.ignore_conversation(args["conversationIds"], bool(args.get("restore")),
                                                  bool(args.get("deleteExisting")), args.get("imapConfig"))

    @tool("outlook_flag_email", "🚩 Flag emails for follow-up", _mailbox_schema({
        "messageIds": MESSAGE_IDS,
        "flag": obj({"type": string(enum=["followUp", "complete", "clear"]),
                     "color": string(), "dueDate": string(), "reminder": string()}, required=["type"]),
    }, ["messageIds", "flag"]))
    def outlook_flag_email(self, args: dict) -> str:
        return self.generator.flag_email(args["messageIds"], args["flag"], args.get("folder") or "INBOX",
                                         args.get("imapConfig"))

    @tool("outlook_categories", "🏷️ Create, list, apply or remove categories", _mailbox_schema({
        "operation": string(enum=["create", "list", "apply", "remove"]),
        "categories": array(obj({"name": string(), "color": string(), "shortcut": string()}, required=["name"])),
        "categoryNames": array(string()),
        "messageIds": MESSAGE_IDS,
        "outputPath": OUTPUT_FILE,
    }, ["operation"]))
    def outlook_categories(self, args: dict) -> str:
        text, writable = self.generator.categories(
            args["operation"], args.get("categories"), args.get("categoryNames"), args.get("messageIds"),
            args.get("folder") or "INBOX", args.get("imapConfig"))
        if not writable:
            return text
        if args["operation"] == "create":
            return self.emit(args, text, f"Created {count(args.get('categories'))} categor(ies)")
        return self.emit(args, text, "Category list")

    @tool("outlook_create_signature", "✍️ Create email signatures", object_schema({
        "signatures": array(obj({
            "name": string(),
            "html": string(),
            "text": string("Plain-text version (default: html without tags)"),
            "images": array(obj({"filename": string(), "path": string()}, required=["filename", "path"])),
            "defaultFor": obj({"newMessages": boolean(), "replies": boolean()}),
        }, required=["name", "html"])),
        "outputPath": OUTPUT_DIRECTORY,
    }, required=["signatures"]))
    def outlook_create_signature(self, args: dict) -> str:
        results = []
        for signature in args["signatures"]:
            html, text = self.generator.signature(signature)
            htm_path = self.created(args, f"{signature['name']}.htm")
            txt_path = self.created(args, f"{signature['name']}.txt")
            self.write_text(htm_path, html)
            self.write_text(txt_path, text)
            images = signature.get("images") or []
            for image in images:
                self.write_text(self.created(args, os.path.basename(image["filename"])),
                                read_source(self.media(image["path"])))
            results.append(f"Created signature: {signature['name']}\n  HTML: {htm_path}\n  Text: {txt_path}\n"
                           f"  Images: {len(images)}")
        return ("\n\n".join(results) + "\n\nNote: Copy these signature files to Outlook signature folder:\n"
                "Windows: %APPDATA%\\Microsoft\\Signatures\\\n"
                "Mac: ~/Library/Group Containers/UBF8T346G9.Office/Outlook/Outlook 15 Profiles/Main Profile/Data/"
                "Signatures/")

    @tool("outlook_autocomplete", "⌨️ Manage the autocomplete address cache", object_schema({
        "operation": string(enum=["export", "import", "clear", "add", "remove"]),
        "entries": array(obj({"email": string(), "displayName": string()}, required=["email"])),
        "filePath": string("Export/import file (default autocomplete.nk2)"),
        "outputPath": OUTPUT_FILE,
    }, required=["operation"]))
    def outlook_autocomplete(self, args: dict) -> str:
        operation = args["operation"]
        if operation == "import":
            path = self.paths.file_or_default(args.get("filePath"), "autocomplete.nk2")
            return (f"Import from: {path}\n\n"
                    "Note: Actual .nk2 import requires Outlook client or third-party tools like NK2Edit.")
        text = self.generator.autocomplete(operation, args.get("entries"))
        if operation == "export":
            path = self.paths.file_or_default(args.get("filePath"), "autocomplete.nk2")
            self.write_text(path, text)
            return (f"Exported {count(args.get('entries'))} autocomplete entries to: {path}\n\n"
                    "Note: This is a JSON representation. Actual .nk2 files use a binary format. "
                    "Use NK2Edit or similar tools for real .nk2 files.")
        return self.emit(args, text, f"Autocomplete operation: {operation}")

    # ── mail merge ───────────────────────────────────────────────────

    @tool("outlook_mail_merge", "📬 Mail merge with filters and conditional content", object_schema({
        "dataSource": array(obj(), "Records; each needs an email (or Email) field to be sent"),
        "template": obj({"subject": string(), "body": string("Text with {{field}} placeholders"),
                         "html": boolean()}),
        "filters": array(obj({"field": string(),
                              "operator": string(enum=["equals", "notEquals", "contains", "greaterThan", "lessThan",
                                                     "startsWith", "endsWith"]),
                              "value": {}}, required=["field", "operator"])),
        "conditionalContent": array(obj({"condition": string("e.g. {{tier}} === 'premium'"),
                                         "content": string()}, required=["condition", "content"])),
        "attachments": array(obj({"filename": string(), "path": string(), "conditional": string()})),
        "sendOptions": obj({"batchSize": integer(), "delayBetweenBatches": number("Seconds"),
                            "testMode": boolean(), "testAddress": string()}),
        "smtpConfig": SMTP_CONFIG,
        "outputPath": OUTPUT_FILE,
    }, required=["dataSource"]))
    def outlook_mail_merge(self, args: dict) -> str:
        result = self.generator.mail_merge(
            args["dataSource"], args.get("template"), args.get("filters"), args.get("conditionalContent"),
            self.attachments(args.get("attachments")), args.get("sendOptions"), args.get("smtpConfig"))
        if "sent" in result:
            return (f"Mail merge completed. Sent {result['sent']} email(s) to {result['filteredRecords']} "
                    f"recipient(s).\nBatches: {result['batches']}\nBatch size: {result['batchSize']}")
        text = json.dumps(result, indent=2, ensure_ascii=False)
        if not args.get("outputPath"):
            return text
        path = self.paths.resolve(args["outputPath"])
        self.write_text(path, text)
        return (f"Mail merge completed. Generated {result['emailsGenerated']} email(s) from "
                f"{result['filteredRecords']} filtered record(s).\nSaved to: {path}\n\n"
                f"Test mode: {str(result['testMode']).lower()}\nBatch size: {result['batchSize']}")
