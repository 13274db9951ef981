'''
Domain exceptions raised by the generators.

Every exception surfaces to the client as a JSON-RPC internal error whose
message is str(exception).
'''


class OfficeWhispererError(Exception):
    """Base class for errors raised while building an artifact."""


class SheetNotFoundError(OfficeWhispererError):
    def __init__(self, sheet_name: str):
        super().__init__(f'Sheet "{sheet_name}" not found')
        self.sheet_name = sheet_name


class TableNotFoundError(OfficeWhispererError):
    def __init__(self, table_name: str):
        super().__init__(f'Table "{table_name}" not found')
        self.table_name = table_name


class SlideNotFoundError(OfficeWhispererError):
    def __init__(self, slide_number: int, slide_count: int):
        super().__init__(f"Slide {slide_number} not found (presentation has {slide_count} slides)")
        self.slide_number = slide_number


class MailError(OfficeWhispererError):
    """SMTP or IMAP failure."""
