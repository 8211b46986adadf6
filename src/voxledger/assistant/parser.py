"""Deterministic utterance parser.

The cheap path in front of the LLM classifier: regex and keyword rules
that pull amounts, dates, payment methods, categories, service providers,
reminder and query cues out of an utterance.  Nothing here raises on odd
input; anything the rules cannot place is left for the classifier.

Two entry points:

- :func:`parse`: read a fresh utterance into a :class:`ClassifiedIntent`.
- :func:`parse_answer`: read a reply as the answer to one specific
  question (a bare "Lakshmi" is a name only because we asked for one).
"""

from __future__ import annotations

import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel

from voxledger.assistant import slots as fields
from voxledger.assistant.dates import detect_period, find_date
from voxledger.assistant.drafts import (
    AttendanceDraft,
    ClassifiedIntent,
    RecordKind,
    TransactionDraft,
    WageFrequency,
    build_draft,
)

#: Confidence assigned to kinds resolved by the rules below.
PARSER_CONFIDENCE = 0.9

# ── Vocabularies ──────────────────────────────────────────────────────────────

EXPENSE_KEYWORDS = (
    "paid", "pay", "spent", "bought", "purchased", "gave", "payment",
    "bill for", "charged", "billed", "price was", "cost",
)

INCOME_KEYWORDS = (
    "received", "got", "credited", "deposited", "earned", "pension",
    "dividend", "interest", "family sent",
)

PAYMENT_METHODS: dict[str, tuple[str, ...]] = {
    "upi": ("gpay", "google pay", "phonepe", "paytm", "upi"),
    "cash": ("cash",),
    "card": ("credit card", "debit card", "card"),
    "bank_transfer": ("bank transfer", "neft", "rtgs", "imps", "net banking", "transferred"),
    "cheque": ("cheque",),
}

CATEGORY_RULES: dict[str, tuple[str, ...]] = {
    "groceries": (
        "food", "grocery", "groceries", "vegetables", "fruits", "milk",
        "meat", "spices", "pet food", "supplements", "rice", "dal",
    ),
    "home_utilities": (
        "broom", "mop", "detergent", "electronics", "clothes", "furniture",
        "appliances", "plumber", "electrician",
    ),
    "bills": (
        "electricity", "water bill", "gas", "property tax", "maintenance",
        "phone bill", "mobile bill", "internet",
    ),
    "online_shopping": ("amazon", "flipkart", "meesho", "online order", "delivered"),
    "vehicle": (
        "petrol", "diesel", "car wash", "vehicle", "car", "bike", "puncture",
        "tyre", "repair",
    ),
    "medical": (
        "doctor", "hospital", "pharmacy", "medicine", "physiotherapy",
        "massage", "scan", "xray", "x-ray", "lab test", "clinic",
    ),
}

#: Category added to every payment that involves a service provider.
LOGBOOK_CATEGORY = "logbook"

#: Category of a payment that matches no keyword set.
MISCELLANEOUS_CATEGORY = "miscellaneous"

#: Provider type → (keywords, usual pay frequency).
PROVIDER_RULES: dict[str, tuple[tuple[str, ...], WageFrequency]] = {
    "maid": (("maid", "house help", "cleaning lady", "bai"), WageFrequency.MONTHLY),
    "driver": (("driver", "chauffeur"), WageFrequency.MONTHLY),
    "milkman": (("milkman", "milk delivery", "doodhwala"), WageFrequency.MONTHLY),
    "watchman": (("watchman", "security guard", "guard"), WageFrequency.MONTHLY),
    "gardener": (("gardener", "mali"), WageFrequency.MONTHLY),
    "cook": (("cook", "chef"), WageFrequency.MONTHLY),
    "physiotherapist": (("physiotherapist", "physio"), WageFrequency.DAILY),
    "nurse": (("nurse", "caregiver", "care taker", "caretaker"), WageFrequency.DAILY),
}

REMINDER_TRIGGERS = (
    r"\bremind\b", r"\breminder\b", r"\bremember\b", r"\bdon'?t forget\b",
    r"\bdo not forget\b", r"\bnotify\b",
)

_REMINDER_PREFIX_RE = re.compile(
    r"^\s*(?:please\s+)?(?:"
    r"(?:set|add|create)\s+(?:a\s+)?reminder\s+(?:to|for|about)"
    r"|remind\s+me\s+(?:to|about|of)"
    r"|remind\s+me"
    r"|reminder\s+(?:to|for|about)"
    r"|(?:don'?t|do not)\s+(?:let\s+me\s+)?forget\s+(?:to|about)?"
    r"|remember\s+to"
    r"|notify\s+me\s+(?:to|about)"
    r")\s*",
    re.IGNORECASE,
)

_QUERY_RE = re.compile(
    r"\bhow much\b|\bhow many\b|\bshow me\b|\bshow\b.*\b(?:expenses|spending|transactions|payments)\b"
    r"|\btotal\b|\blist\b|\bsummary\b|\bbalance\b|\bwhat did i\b|\bwhat have i\b"
    r"|\bwhen did i\b|\bdid i pay\b|\bpending reminders?\b|\bmy reminders\b",
    re.IGNORECASE,
)

_ABSENT_RE = re.compile(
    r"\babsent\b|\bon leave\b|\btook (?:a )?leave\b|\bleave today\b"
    r"|\bdid(?:n'?t| not) (?:come|turn up|show up)\b|\bnot (?:come|coming)\b"
    r"|\bwasn'?t (?:here|there)\b|\bday off\b|\bno show\b",
    re.IGNORECASE,
)

_PRESENT_RE = re.compile(
    r"\bpresent\b|\bcame\b|\bturned up\b|\bshowed up\b|\bwas here\b|\bcame today\b|\bcame in\b",
    re.IGNORECASE,
)

_CANCEL_RE = re.compile(
    r"^\s*(?:(?:no|oh|ok|okay|please|just|actually)[,\s]+)*"
    r"(?:cancel|never\s*mind|forget\s+(?:it|that|about\s+it)|stop|abort)\b",
    re.IGNORECASE,
)

_AMOUNT_RE = re.compile(
    r"(?P<prefix>\brs\.?|\binr\b|₹)?\s*"
    r"(?P<number>\d{1,3}(?:,\d{2,3})+(?:\.\d{1,2})?|\d+(?:\.\d{1,2})?)"
    r"(?P<k>k\b)?"
    r"(?!\s*(?:st|nd|rd|th|hours?|hrs?|days?|times?|weeks?|months?|years?|am|pm|visits?)\b)"
    r"(?!\d|/|-\d)"
    r"\s*(?P<suffix>rupees|rupee|rs\.?|₹|/-)?",
    re.IGNORECASE,
)

NUMBER_WORDS: dict[str, int] = {
    "zero": 0, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10, "eleven": 11,
    "twelve": 12, "thirteen": 13, "fourteen": 14, "fifteen": 15,
    "sixteen": 16, "seventeen": 17, "eighteen": 18, "nineteen": 19,
}
_TENS: dict[str, int] = {
    "twenty": 20, "thirty": 30, "forty": 40, "fifty": 50,
    "sixty": 60, "seventy": 70, "eighty": 80, "ninety": 90,
}
_SCALES: dict[str, int] = {
    "hundred": 100, "thousand": 1000, "lakh": 100_000, "lakhs": 100_000,
}

_FREQUENCY_PATTERNS: list[tuple[WageFrequency, str]] = [
    (WageFrequency.HOURLY, r"\b(?:per|an|a|every)\s+hour\b|\bhourly\b|/\s*hr\b"),
    (WageFrequency.DAILY, r"\b(?:per|a|every)\s+day\b|\bdaily\b|/\s*day\b"),
    (WageFrequency.WEEKLY, r"\b(?:per|a|every)\s+week\b|\bweekly\b"),
    (WageFrequency.MONTHLY, r"\b(?:per|a|every)\s+month\b|\bmonthly\b|\bsalary\b"),
]

#: Words that follow a provider keyword but are never a name.
_NAME_STOPWORDS = frozenset({
    "a", "about", "absent", "amount", "an", "and", "at", "bill", "by", "came",
    "cash", "come", "coming", "daily", "did", "didn", "didnt", "every",
    "for", "from", "gpay", "has", "her", "his", "in", "is", "last", "leave",
    "monthly", "money", "next", "not", "of", "off", "on", "paid", "payment",
    "per", "present", "rs", "rupees", "salary", "the", "their", "this",
    "to", "today", "tomorrow", "took", "upi", "wage", "wages", "was",
    "weekly", "will", "with", "yesterday", "named", "called", "name",
    "wasn", "hasn", "isn", "also", "again", "here", "there",
})

_LEADING_VERBS_RE = re.compile(
    r"^(?:i\s+|we\s+)?(?:have\s+|had\s+|just\s+)?"
    r"(?:paid|pay|spent|gave|bought|purchased|received|got|earned|made\s+a\s+payment)\b\s*",
    re.IGNORECASE,
)
_EDGE_WORDS = r"(?:for|on|to|the|of|at|by|in|via|using|through|with|and|from)"


# ── Small extractors ──────────────────────────────────────────────────────────


def is_cancel(text: str) -> bool:
    """Return ``True`` if *text* asks to abandon the pending request."""
    return bool(_CANCEL_RE.search(text))


def _contains(lowered: str, keyword: str) -> bool:
    return re.search(rf"\b{re.escape(keyword)}\b", lowered) is not None


def _to_decimal(raw: str) -> Decimal | None:
    try:
        return Decimal(raw.replace(",", ""))
    except InvalidOperation:
        return None


def _spoken_amount(text: str) -> tuple[Decimal, int, int] | None:
    """Read a spoken amount such as "two thousand five hundred"."""
    vocab = NUMBER_WORDS.keys() | _TENS.keys() | _SCALES.keys()
    tokens = list(re.finditer(r"[a-z]+", text.lower()))
    i = 0
    while i < len(tokens):
        if tokens[i].group() not in vocab:
            i += 1
            continue
        j = i
        total = current = 0
        has_scale = False
        while j < len(tokens) and (tokens[j].group() in vocab or tokens[j].group() == "and"):
            word = tokens[j].group()
            if word in NUMBER_WORDS:
                current += NUMBER_WORDS[word]
            elif word in _TENS:
                current += _TENS[word]
            elif word == "hundred":
                current = max(current, 1) * 100
                has_scale = True
            elif word in _SCALES:
                total += max(current, 1) * _SCALES[word]
                current = 0
                has_scale = True
            j += 1
        end = tokens[j - 1].end()
        followed_by_currency = re.match(r"\s*(?:rupees|rs\b|₹)", text[end:], re.IGNORECASE)
        if has_scale or followed_by_currency:
            return Decimal(total + current), tokens[i].start(), end
        i = j
    return None


def find_amount(text: str) -> tuple[Decimal, int, int] | None:
    """Return ``(amount, start, end)`` for the first money amount in *text*.

    Amounts carrying a currency marker win over bare numbers; ordinals,
    dates and quantities ("3 days", "2 hours") are never amounts.
    """
    date_match = find_date(text)
    masked = text
    if date_match is not None:
        masked = (
            text[: date_match.start]
            + " " * (date_match.end - date_match.start)
            + text[date_match.end :]
        )

    plain: tuple[Decimal, int, int] | None = None
    for match in _AMOUNT_RE.finditer(masked):
        value = _to_decimal(match.group("number"))
        if value is None:
            continue
        if match.group("k"):
            value *= 1000
        span = (value, match.start("number"), match.end())
        if match.group("prefix") or match.group("suffix"):
            return (value, match.start(), match.end())
        if plain is None:
            plain = span
    if plain is not None:
        return plain
    return _spoken_amount(masked)


def extract_amount(text: str) -> Decimal | None:
    """Return the first money amount in *text*, or ``None``."""
    found = find_amount(text)
    return found[0] if found else None


def extract_number(text: str) -> float | None:
    """Return the first plain number in *text*, digits or a word up to nineteen."""
    match = re.search(r"\b\d+(?:\.\d+)?\b", text)
    if match:
        return float(match.group())
    lowered = text.lower()
    if re.search(r"\bhalf\b", lowered) and not re.search(r"\band a half\b", lowered):
        return 0.5
    for word, value in NUMBER_WORDS.items():
        if _contains(lowered, word):
            extra = 0.5 if re.search(rf"\b{word} and a half\b", lowered) else 0.0
            return value + extra
    return None


def detect_transaction_type(text: str) -> str | None:
    """Return ``"expense"``, ``"income"`` or ``None``."""
    lowered = text.lower()
    if any(_contains(lowered, kw) for kw in EXPENSE_KEYWORDS):
        return "expense"
    if any(_contains(lowered, kw) for kw in INCOME_KEYWORDS):
        return "income"
    return None


def detect_payment_method(text: str) -> str | None:
    """Return the payment method named in *text*, if any."""
    lowered = text.lower()
    for method, keywords in PAYMENT_METHODS.items():
        if any(_contains(lowered, kw) for kw in keywords):
            return method
    return None


def detect_categories(text: str) -> list[str]:
    """Return every category whose keywords appear in *text*.

    ``logbook`` is added whenever a service provider is mentioned.  When
    nothing matches the result is ``["miscellaneous"]``.
    """
    lowered = text.lower()
    categories = [
        category
        for category, keywords in CATEGORY_RULES.items()
        if any(_contains(lowered, kw) for kw in keywords)
    ]
    if detect_provider(text) is not None:
        categories.append(LOGBOOK_CATEGORY)
    return categories or [MISCELLANEOUS_CATEGORY]


def _clean_name(raw: str) -> str | None:
    if not raw or raw.lower() in _NAME_STOPWORDS or not raw.isalpha():
        return None
    return raw[0].upper() + raw[1:].lower() if raw.islower() or raw.isupper() else raw


def detect_provider(text: str) -> tuple[str, str | None] | None:
    """Return ``(provider_type, name)`` for the first provider mentioned.

    The name is taken from "maid Lakshmi", "maid named Lakshmi",
    "maid called Lakshmi" or "Lakshmi the maid" (capitalized only).
    """
    lowered = text.lower()
    for provider_type, (keywords, _) in PROVIDER_RULES.items():
        for keyword in keywords:
            if not _contains(lowered, keyword):
                continue
            kw = re.escape(keyword)
            name: str | None = None
            after = re.search(
                rf"\b{kw}\s+(?:(?:is\s+)?(?:named|called)\s+)?([A-Za-z]+)", text, re.IGNORECASE,
            )
            if after:
                name = _clean_name(after.group(1))
            if name is None:
                before = re.search(rf"\b([A-Z][a-z]+)\s*,?\s+(?:the|our|my)\s+{kw}\b", text)
                if before:
                    name = _clean_name(before.group(1))
            return provider_type, name
    return None


def default_wage_frequency(provider_type: str | None) -> WageFrequency:
    """Return the usual pay frequency for *provider_type* (monthly if unknown)."""
    if provider_type in PROVIDER_RULES:
        return PROVIDER_RULES[provider_type][1]
    return WageFrequency.MONTHLY


def detect_frequency(text: str) -> WageFrequency | None:
    """Return the pay frequency phrase in *text*, if any."""
    lowered = text.lower()
    for frequency, pattern in _FREQUENCY_PATTERNS:
        if re.search(pattern, lowered):
            return frequency
    return None


def parse_schedule(text: str) -> dict[str, Any]:
    """Pull visits per week and hours per visit out of *text*."""
    lowered = text.lower()
    words = "|".join(NUMBER_WORDS)
    schedule: dict[str, Any] = {}

    visits = re.search(
        rf"\b(\d+|{words})\s*(?:times|days|visits|x)\s*(?:a|per|every|in\s+a)\s+week\b", lowered,
    )
    if visits:
        raw = visits.group(1)
        schedule["visits_per_week"] = int(raw) if raw.isdigit() else NUMBER_WORDS[raw]
    elif re.search(r"\bevery\s*day\b|\bdaily\b|\ball week\b", lowered):
        schedule["visits_per_week"] = 7
    elif re.search(r"\bweekdays\b|\bmonday to friday\b", lowered):
        schedule["visits_per_week"] = 5

    hours = re.search(rf"\b(\d+(?:\.\d+)?|{words})\s*(?:hours?|hrs?)\b", lowered)
    if hours:
        raw = hours.group(1)
        schedule["hours_per_visit"] = float(raw) if raw[0].isdigit() else float(NUMBER_WORDS[raw])

    return schedule


def parse_wage(text: str, provider_type: str | None = None, *, require_frequency: bool = True) -> dict[str, Any] | None:
    """Read "2000 a month" style wage information.

    Args:
        text: Utterance or answer.
        provider_type: Used for the default frequency when none is said.
        require_frequency: When ``False`` an amount alone is accepted and
            the provider's usual frequency is assumed.

    Returns:
        A ``{"amount", "frequency", "schedule"?}`` dict, or ``None``.
    """
    amount = extract_amount(text)
    if amount is None:
        return None
    frequency = detect_frequency(text)
    if frequency is None:
        if require_frequency:
            return None
        frequency = default_wage_frequency(provider_type)
    wage: dict[str, Any] = {"amount": amount, "frequency": frequency.value}
    schedule = parse_schedule(text)
    if schedule:
        wage["schedule"] = schedule
    return wage


def detect_attendance_status(text: str) -> str | None:
    """Return ``"absent"``, ``"present"`` or ``None``."""
    if _ABSENT_RE.search(text):
        return "absent"
    if _PRESENT_RE.search(text):
        return "present"
    return None


def is_reminder(text: str) -> bool:
    lowered = text.lower()
    return any(re.search(pattern, lowered) for pattern in REMINDER_TRIGGERS)


def looks_like_query(text: str) -> bool:
    """Heuristic: questions about past spending, payments or reminders."""
    return bool(_QUERY_RE.search(text))


def _strip_span(text: str, start: int, end: int) -> str:
    return text[:start] + " " + text[end:]


def _tidy(text: str) -> str | None:
    """Collapse whitespace and trim dangling connectors and punctuation."""
    cleaned = re.sub(r"\s+", " ", text).strip(" ,.;:!?-")
    for _ in range(3):
        cleaned = re.sub(rf"^{_EDGE_WORDS}\b\s*", "", cleaned, flags=re.IGNORECASE)
        cleaned = re.sub(rf"\s*\b{_EDGE_WORDS}$", "", cleaned, flags=re.IGNORECASE)
        cleaned = cleaned.strip(" ,.;:!?-")
    return cleaned or None


def extract_description(text: str) -> str | None:
    """Describe a payment: the utterance minus amount, date and payment method."""
    working = text
    found = find_amount(working)
    if found is not None:
        working = _strip_span(working, found[1], found[2])
    date_match = find_date(working)
    if date_match is not None:
        working = _strip_span(working, date_match.start, date_match.end)
    for keywords in PAYMENT_METHODS.values():
        for kw in keywords:
            working = re.sub(
                rf"\b(?:by|via|using|through|on|in)?\s*{re.escape(kw)}\b", " ", working, flags=re.IGNORECASE,
            )
    working = re.sub(r"\b(?:rupees|rupee|rs\.?|inr)\b|₹", " ", working, flags=re.IGNORECASE)
    working = _LEADING_VERBS_RE.sub("", working.strip())
    return _tidy(working)


def _provider_description(description: str | None, provider_type: str, name: str | None) -> str:
    """Drop the provider's keyword and name from a payment description.

    "paid maid Lakshmi 2000" describes itself as "maid payment"; anything
    left over ("for cleaning") is kept instead.
    """
    working = description or ""
    keywords, _ = PROVIDER_RULES[provider_type]
    for word in (*keywords, name):
        if word:
            working = re.sub(rf"\b{re.escape(word)}\b", " ", working, flags=re.IGNORECASE)
    working = re.sub(r"\b(?:named|called|our|my|salary|wages?|payment)\b", " ", working, flags=re.IGNORECASE)
    return _tidy(working) or f"{provider_type} payment"


def _recurrence(text: str) -> tuple[str, int, int] | None:
    match = re.search(
        r"\bevery\s+(day|week|month|year)\b|\b(daily|weekly|monthly|yearly)\b", text, re.IGNORECASE,
    )
    if not match:
        return None
    word = (match.group(1) or match.group(2)).lower()
    frequency = {
        "day": "daily", "week": "weekly", "month": "monthly", "year": "yearly",
    }.get(word, word)
    return frequency, match.start(), match.end()


# ── Per-kind slot extraction ──────────────────────────────────────────────────


def _transaction_slots(text: str, today: date) -> dict[str, Any]:
    slots: dict[str, Any] = {}
    amount = extract_amount(text)
    if amount is not None:
        slots["amount"] = amount
    kind = detect_transaction_type(text)
    if kind:
        slots["type"] = kind
    method = detect_payment_method(text)
    if method:
        slots["payment_method"] = method
    day = find_date(text, today)
    if day is not None:
        slots["date"] = day.value

    description = extract_description(text)
    provider = detect_provider(text)
    if provider is not None:
        description = _provider_description(description, *provider)
    # Categories travel with the description; a later description answer
    # brings its own.
    if description:
        slots["description"] = description
        slots["categories"] = detect_categories(text)

    if provider is not None:
        provider_type, name = provider
        sp: dict[str, Any] = {"type": provider_type}
        if name:
            sp["name"] = name
        wage = parse_wage(text, provider_type)
        if wage:
            sp["wage"] = wage
        slots["service_provider"] = sp
    return slots


def _attendance_slots(text: str, today: date) -> dict[str, Any]:
    slots: dict[str, Any] = {}
    provider = detect_provider(text)
    if provider is not None:
        slots["provider_type"], name = provider
        if name:
            slots["name"] = name
    status = detect_attendance_status(text)
    if status:
        slots["status"] = status
    day = find_date(text, today)
    if day is not None:
        slots["date"] = day.value
    wage = parse_wage(text, slots.get("provider_type")) or {}
    schedule = parse_schedule(text)
    if schedule:
        wage.setdefault("schedule", schedule)
    if wage:
        slots["wage"] = wage
    return slots


def _reminder_slots(text: str, today: date) -> dict[str, Any]:
    slots: dict[str, Any] = {}
    working = _REMINDER_PREFIX_RE.sub("", text, count=1)

    day = find_date(working, today, prefer_future=True)
    if day is not None:
        slots["due_date"] = day.value
        working = _strip_span(working, day.start, day.end)

    recurrence = _recurrence(working)
    if recurrence is not None:
        slots["recurring"] = True
        slots["frequency"] = recurrence[0]
        working = _strip_span(working, recurrence[1], recurrence[2])

    found = find_amount(working)
    if found is not None:
        slots["amount"] = found[0]
        working = _strip_span(working, found[1], found[2])
        working = re.sub(r"\b(?:rupees|rupee|rs\.?|inr)\b|₹", " ", working, flags=re.IGNORECASE)

    title = _tidy(working)
    slots["title"] = title or text.strip()
    return slots


def query_slots(text: str) -> dict[str, Any]:
    """Describe a spending question: period, category, provider and query type."""
    lowered = text.lower()
    slots: dict[str, Any] = {"text": text, "period": detect_period(text)}
    categories = [
        c for c in detect_categories(text) if c not in (LOGBOOK_CATEGORY, MISCELLANEOUS_CATEGORY)
    ]
    if categories:
        slots["category"] = categories[0]
    provider = detect_provider(text)
    if provider is not None:
        slots["provider_type"] = provider[0]
        if provider[1]:
            slots["provider_name"] = provider[1]

    if re.search(r"\breminders?\b", lowered):
        slots["query_type"] = "reminders"
    elif provider is not None:
        slots["query_type"] = "provider_payments"
    elif re.search(r"\b(?:income|received|earned|got)\b", lowered):
        slots["query_type"] = "income"
    elif re.search(r"\b(?:list|show|recent|last few|latest|transactions)\b", lowered) and not re.search(
        r"\bhow much\b|\btotal\b", lowered,
    ):
        slots["query_type"] = "recent"
    else:
        slots["query_type"] = "expenses"
    return slots


# ── Entry points ──────────────────────────────────────────────────────────────


def parse(text: str, today: date | None = None) -> ClassifiedIntent:
    """Read a fresh utterance with the deterministic rules.

    Kind resolution order: reminder trigger, query cue, provider plus an
    attendance cue, then any money cue (amount, expense/income keyword,
    payment method).  When none apply the result is ``unknown`` with
    confidence ``0`` and the caller should consult the classifier.
    """
    today = today or date.today()
    stripped = text.strip()
    if not stripped:
        return ClassifiedIntent.unknown()

    if is_reminder(stripped):
        kind, slots = RecordKind.REMINDER, _reminder_slots(stripped, today)
    elif looks_like_query(stripped):
        kind, slots = RecordKind.QUERY, query_slots(stripped)
    elif detect_provider(stripped) and detect_attendance_status(stripped) and not detect_transaction_type(stripped):
        kind, slots = RecordKind.ATTENDANCE, _attendance_slots(stripped, today)
    elif (
        extract_amount(stripped) is not None
        or detect_transaction_type(stripped)
        or detect_payment_method(stripped)
    ):
        kind, slots = RecordKind.TRANSACTION, _transaction_slots(stripped, today)
    else:
        return ClassifiedIntent.unknown()

    intent = ClassifiedIntent(kind=kind, confidence=PARSER_CONFIDENCE, slots=slots)
    if kind != RecordKind.QUERY:
        intent.missing_fields = fields.missing_fields(build_draft(kind, slots))
    return intent


def _answer_name(text: str) -> str | None:
    """Read a bare name answer: "Lakshmi", "her name is Lakshmi", "it's Ravi".

    The name must be the whole reply: one or two name words and nothing
    else.  A reply that reads as a request of its own ("how much did I
    spend", "remind me to ...") is never a name.
    """
    if is_reminder(text) or looks_like_query(text) or parse(text).kind != RecordKind.UNKNOWN:
        return None
    working = re.sub(
        r"^\s*(?:(?:her|his|their|the)\s+name\s+is|(?:she|he)\s+is(?:\s+called)?|it'?s|it\s+is|call\s+(?:her|him)|name\s+is)\s+",
        "",
        text.strip(),
        flags=re.IGNORECASE,
    )
    tokens = re.sub(r"[.,!?]", " ", working).split()
    if not 1 <= len(tokens) <= 2:
        return None
    names = [_clean_name(token) for token in tokens]
    if any(name is None for name in names):
        return None
    return " ".join(names)  # type: ignore[arg-type]


def parse_answer(
    draft: BaseModel,
    field_name: str,
    text: str,
    today: date | None = None,
) -> dict[str, Any] | None:
    """Interpret *text* as the answer to the question about *field_name*.

    Returns:
        Slots shaped like *draft* carrying the answer, or ``None`` if the
        reply does not answer the question.
    """
    today = today or date.today()
    provider_type: str | None = None
    match draft:
        case TransactionDraft(service_provider=sp) if sp is not None:
            provider_type = sp.type
        case AttendanceDraft():
            provider_type = draft.provider_type

    if field_name == fields.AMOUNT:
        amount = extract_amount(text)
        if amount is None:
            number = extract_number(text)
            amount = Decimal(str(number)) if number is not None else None
        return {"amount": amount} if amount is not None else None

    if field_name == fields.DESCRIPTION:
        description = extract_description(text)
        if not description:
            return None
        return {"description": description, "categories": detect_categories(text)}

    if field_name == fields.PROVIDER_NAME:
        name = _answer_name(text)
        return {"service_provider": {"name": name}} if name else None

    if field_name == fields.PROVIDER_WAGE:
        wage = parse_wage(text, provider_type, require_frequency=False)
        return {"service_provider": {"wage": wage}} if wage else None

    if field_name == fields.PROVIDER_TYPE:
        provider = detect_provider(text)
        if provider is None:
            return None
        answer = {"provider_type": provider[0]}
        if provider[1]:
            answer["name"] = provider[1]
        return answer

    if field_name == fields.NAME:
        name = _answer_name(text)
        return {"name": name} if name else None

    if field_name == fields.WAGE:
        wage = parse_wage(text, provider_type, require_frequency=False)
        return {"wage": wage} if wage else None

    if field_name == fields.VISITS_PER_WEEK:
        schedule = parse_schedule(text)
        visits = schedule.get("visits_per_week")
        if visits is None:
            number = extract_number(text)
            visits = int(number) if number is not None and 0 < number <= 7 else None
        return {"wage": {"schedule": {"visits_per_week": visits}}} if visits else None

    if field_name == fields.HOURS_PER_VISIT:
        hours = parse_schedule(text).get("hours_per_visit")
        if hours is None:
            hours = extract_number(text)
        return {"wage": {"schedule": {"hours_per_visit": hours}}} if hours else None

    if field_name == fields.STATUS:
        status = detect_attendance_status(text)
        if status is None:
            lowered = text.strip().lower()
            if re.match(r"^(?:yes|yeah|yup|she was|he was)\b", lowered):
                status = "present"
            elif re.match(r"^(?:no|nope)\b", lowered):
                status = "absent"
        return {"status": status} if status else None

    if field_name == fields.DUE_DATE:
        day = find_date(text, today, prefer_future=True)
        return {"due_date": day.value} if day else None

    return None
