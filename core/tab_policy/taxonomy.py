"""Shared tab blocklists and status vocabularies used by export and reorg stages."""

from __future__ import annotations

# Raw URL prefixes that never address a fetchable page (browser-internal pages,
# extension pages, blank tabs).
SKIP_PREFIXES = (
    "about:",
    "chrome://",
    "chrome-extension://",
    "chrome-search://",
    "chrome-untrusted://",
    "devtools://",
    "edge://",
    "moz-extension://",
    "view-source:",
    "data:",
    "javascript:",
    "blob:",
)

# Hosts (and host/path markers) that require auth, are inherently empty, or
# reliably block automated readers. A bare host also covers its subdomains.
SKIP_HOSTS = (
    # code hosts answer the reader with 451
    "github.com",
    "gitlab.com",
    "bitbucket.org",
    # email
    "gmail.com",
    "mail.google.com",
    "outlook.com",
    "yahoo.com",
    # sign-in pages
    "accounts.google.com",
    "login.microsoftonline.com",
    "twitter.com/login",
    "x.com/login",
    "facebook.com",
    "linkedin.com/login",
    "medium.com/m/signin",
    "youtube.com/signin",
    # auth walls
    "quora.com",
    "instagram.com",
    "tiktok.com",
    # legal blocks
    "www.google.com/maps",
    "r.jina.ai",
    # calendars and scheduling
    "calendar.google.com",
    "outlook.live.com/calendar",
    "calendly.com",
    # status-code reference pages
    "httpstatuses.com",
    "httpstatus.io",
    # local development
    "localhost",
    "127.0.0.1",
    "0.0.0.0",
    # new-tab pages
    "newtab",
    "new-tab",
    "start.duckduckgo.com",
    # cloud storage
    "drive.google.com",
    "dropbox.com",
    "onedrive.live.com",
    "icloud.com",
    # carts and checkouts
    "amazon.com/gp/cart",
    "amazon.com/ap/signin",
    "ebay.com/signin",
    "paypal.com/signin",
)

# Path suffixes that cannot yield useful extracted text.
SKIP_EXTENSIONS = (
    ".pdf",
    ".doc",
    ".docx",
    ".xls",
    ".xlsx",
    ".ppt",
    ".pptx",
    ".zip",
    ".rar",
    ".tar",
    ".gz",
    ".mp4",
    ".avi",
    ".mov",
    ".mp3",
    ".wav",
    ".jpg",
    ".jpeg",
    ".png",
    ".gif",
    ".svg",
    ".webp",
)

# Remote overload signals; these route an error to the backoff retry track.
BACKOFF_STATUS_CODES = (429, 502, 503)
BACKOFF_MESSAGE_HINTS = ("rate limit", "too many requests", "service unavailable")

# Client errors that are still worth a plain retry.
RETRYABLE_CLIENT_STATUS_CODES = (408, 429)

# Legal block: never retried.
LEGAL_BLOCK_STATUS = 451

# Keyword buckets for the structured reorganization payload.
CATEGORY_RULES = (
    ("work", ("slack", "notion", "trello", "asana", "zoom", "teams"), ()),
    ("development", ("github", "stackoverflow", "docs"), ("api", "documentation")),
    ("social", ("twitter", "facebook", "instagram", "youtube", "tiktok", "reddit"), ()),
    ("shopping", ("amazon", "ebay", "shop"), ("cart", "checkout")),
    ("reading", ("news", "medium", "blog", "article"), ()),
)
