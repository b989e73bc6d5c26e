"""Web browser rule set."""

from screentrail.models.events import EventImportance
from screentrail.plugins.ruleset import (
    ContextRule,
    EventRule,
    RuleSet,
    TextRule,
)

WEB_RULES = RuleSet(
    identifier="builtin.web",
    name="Web Browser Parser",
    version="1.0.0",
    description="URLs, navigation, forms and page structure in browsers",
    supported_applications=(
        "com.apple.Safari",
        "com.google.Chrome",
        "org.mozilla.firefox",
        "com.mozilla.firefox",
        "com.microsoft.edgemac",
        "com.operasoftware.Opera",
        "com.brave.Browser",
        "com.vivaldi.Vivaldi",
    ),
    text_rules=(
        TextRule(
            semantic_type="url",
            pattern=r"(?P<url>https?://(?P<domain>[\w.-]+)(?:[/?#]\S*)?)",
            element_type="url",
            value_group="url",
        ),
        TextRule(
            semantic_type="email_address",
            pattern=r"(?P<email>[\w.+-]+@[\w-]+(?:\.[\w-]+)+)",
            element_type="email",
            value_group="email",
        ),
        TextRule(
            semantic_type="breadcrumb",
            pattern=r"^\s*\S[^>›]*(?:\s[>›]\s[^>›]+){1,}$",
            element_type="breadcrumb",
        ),
        TextRule(
            semantic_type="pagination",
            pattern=r"\bPage (?P<page>\d+)(?: of (?P<total>\d+))?\b",
            ignore_case=True,
        ),
        TextRule(
            semantic_type="search_field",
            pattern=r"^\s*(?:search|find)\b",
            ignore_case=True,
        ),
    ),
    context_rules=(
        ContextRule(
            element_type="page_url",
            source="metadata",
            metadata_key="url",
            pattern=r"\S+",
        ),
        ContextRule(
            element_type="domain",
            source="metadata",
            metadata_key="url",
            pattern=r"https?://(?P<domain>[\w.-]+)",
            value_group="domain",
        ),
        ContextRule(
            element_type="page_title",
            pattern=r"^(?P<title>.+?)(?:\s[-—|]\s[^-—|]+)?$",
            value_group="title",
        ),
    ),
    event_rules=(
        EventRule(
            event_type="form_submission",
            pattern=r"\b(?:thank you|successfully (?:submitted|sent|saved)|order (?:placed|confirmed))\b",
            category="data_submission",
            subcategory="web_form",
            importance=EventImportance.HIGH,
        ),
        EventRule(
            event_type="navigation",
            pattern=r"^https?://\S+$",
            category="navigation",
            importance=EventImportance.LOW,
        ),
    ),
)