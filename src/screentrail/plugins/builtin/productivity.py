"""Issue trackers, CRMs, chat and office suites."""

from screentrail.models.events import EventImportance
from screentrail.plugins.ruleset import (
    ContextRule,
    EventRule,
    RuleSet,
    TextRule,
)

_STATUSES = (
    "To Do|In Progress|In Review|Code Review|Done|Closed|Resolved|Reopened|Blocked|Backlog"
)
_PRIORITIES = "Highest|High|Medium|Low|Lowest|Critical|Blocker|Major|Minor|Trivial"

PRODUCTIVITY_RULES = RuleSet(
    identifier="builtin.productivity",
    name="Productivity Parser",
    version="1.0.0",
    description="Issue keys, workflow states, assignments and amounts in productivity tools",
    supported_applications=(
        "com.atlassian.*",
        "com.salesforce.*",
        "com.microsoft.office.*",
        "com.microsoft.teams",
        "com.tinyspeck.slackmacgap",
        "com.slack.*",
        "notion.id",
        "com.asana.*",
        "com.monday.*",
        "com.trello.*",
        "com.airtable.*",
    ),
    text_rules=(
        TextRule(
            semantic_type="issue_key",
            pattern=r"\b(?P<key>[A-Z][A-Z0-9]+-\d+)\b",
            element_type="issue_key",
            value_group="key",
        ),
        TextRule(
            semantic_type="workflow_status",
            pattern=rf"^\s*(?P<status>{_STATUSES})\s*$",
            ignore_case=True,
            element_type="status",
            value_group="status",
        ),
        TextRule(
            semantic_type="priority",
            pattern=rf"\bPriority:?\s*(?P<priority>{_PRIORITIES})\b",
            ignore_case=True,
            element_type="priority",
            value_group="priority",
        ),
        TextRule(
            semantic_type="assignment",
            pattern=r"\bAssign(?:ed|ee)(?: to)?:?\s+(?P<assignee>[A-Z][\w'-]+(?: [A-Z][\w'-]+)?)",
            element_type="assignee",
            value_group="assignee",
        ),
        TextRule(
            semantic_type="mention",
            pattern=r"(?<![\w.])@(?P<handle>[A-Za-z][\w.-]*)",
            element_type="mention",
            value_group="handle",
        ),
        TextRule(
            semantic_type="currency_amount",
            pattern=r"(?P<amount>[$€£¥]\s*\d[\d,]*(?:\.\d{2})?)",
            element_type="amount",
            value_group="amount",
        ),
        TextRule(
            semantic_type="sprint",
            pattern=r"\bSprint (?P<sprint>\d+)\b",
            element_type="sprint",
            value_group="sprint",
        ),
        TextRule(
            semantic_type="story_points",
            pattern=r"^\s*(?P<points>\d+(?:\.\d+)?)\s*(?:pts?|points?)\s*$",
            ignore_case=True,
        ),
    ),
    context_rules=(
        ContextRule(
            element_type="issue_key",
            pattern=r"\b(?P<key>[A-Z][A-Z0-9]+-\d+)\b",
            value_group="key",
            ignore_case=False,
        ),
        ContextRule(
            element_type="channel",
            pattern=r"(?P<channel>#[\w-]+)",
            value_group="channel",
        ),
    ),
    event_rules=(
        EventRule(
            event_type="status_transition",
            pattern=rf"^\s*(?:{_STATUSES})\s*$",
            category="workflow",
            subcategory="status",
            importance=EventImportance.MEDIUM,
        ),
        EventRule(
            event_type="issue_created",
            pattern=r"\b(?:issue|ticket|task) (?:created|[A-Z][A-Z0-9]+-\d+ has been created)\b",
            category="data_creation",
            subcategory="issue",
            importance=EventImportance.HIGH,
        ),
    ),
)