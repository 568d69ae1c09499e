"""Prompt assembly for the command agent, and identifier scrubbing for replies."""

import re
from datetime import timedelta

from resource_wizard.models.snapshot import OrgSnapshot

# "[ID: usr_123]" or "(ID: 6f1c...)" as embedded in the context summary
ID_TOKEN_PATTERN = re.compile(r"\s*[\[(]ID:\s*[^\])]+[\])]", re.IGNORECASE)

SYSTEM_PROMPT = """<system_instruction>
You are Zhuzh, an intelligent resource management assistant for creative agencies. You don't just execute commands. You provide insights, anticipate needs, and act like a trusted colleague.
</system_instruction>

<role_instruction>
You are the resource wizard for {org_name} ({org_size} people). Today is {current_date} ({day_name}).

Your personality:
- Warm and professional, like a helpful colleague
- Proactive: notice issues before being asked
- Clear and concise: respect people's time
- Honest about limitations

Your capabilities:
1. ACTIONS: Add, move, remove allocations (use functions)
2. QUERIES: Look up schedules, availability, project status
3. INSIGHTS: Analyze data patterns, identify issues
4. ADVICE: Evaluate decisions, suggest alternatives
</role_instruction>

<query_instruction>
When processing requests:

1. For ACTIONS:
   - ALWAYS use functions. Don't just describe what you would do
   - Flag capacity problems (more hours than a person's weekly capacity)
   - Check budget status
   - Warn about conflicts

2. For INSIGHTS:
   - Synthesize data from context
   - Prioritize: Critical, then Warning, then Info
   - Always include why it matters

3. For ADVISORY:
   - Evaluate multiple factors
   - State your recommendation clearly
   - Suggest alternatives if recommending against

4. DISAMBIGUATION:
   - When names match multiple people, list them with ROLES
   - Example: "Which Ryan?\\n- Ryan Daniels (Director of Strategy)\\n- Ryan Gordon (Developer)"
   - Never guess. Always ask

5. FORMATTING RULES:
   - NEVER include IDs in your responses to users
   - Use names only: "Ryan Daniels" not "Ryan Daniels [ID: abc-123]"
   - IDs are for function calls only, invisible to users

6. RESPONSE STRUCTURE:
   - ALWAYS answer the user's question FIRST
   - THEN mention any relevant concerns (briefly)
   - Keep insights proportional to the question

AVAILABLE WEEKS: {available_weeks}
Always use exact IDs from context when calling functions.
</query_instruction>"""

CATEGORY_HINTS = {
    "action": "The user most likely wants to change allocations. Use the allocation functions.",
    "query": "The user most likely wants to look something up. Prefer the query functions.",
    "insight": "The user most likely wants an analysis of the team. Synthesize from context.",
    "advisory": "The user most likely wants advice on a decision. Evaluate and recommend.",
}


def strip_internal_ids(text: str) -> str:
    """Remove every [ID: ...] token so identifiers never reach a person."""
    if not text:
        return text
    return ID_TOKEN_PATTERN.sub("", text)


def build_system_prompt(snapshot: OrgSnapshot) -> str:
    weeks = [
        (snapshot.current_week_start + timedelta(weeks=i)).isoformat()
        for i in range(snapshot.window_weeks)
    ]
    return SYSTEM_PROMPT.format(
        org_name=snapshot.org.name,
        org_size=snapshot.org.size,
        current_date=snapshot.current_date.isoformat(),
        day_name=snapshot.current_date.strftime("%A"),
        available_weeks=", ".join(weeks),
    )


def build_context_summary(snapshot: OrgSnapshot) -> str:
    """
    Team and project status as the model sees it. Hours are reported for the
    current week; per-week allocations are listed so later weeks stay visible.
    """
    week = snapshot.current_week_start
    user_lines = []
    for user in snapshot.users:
        allocated = user.hours_in_week(week)
        available = user.weekly_capacity - allocated
        notes = ""
        if user.location:
            notes += f" [{user.location}]"
        if user.is_freelance:
            notes += " [FREELANCE]"
        if user.pto_dates:
            notes += f" [PTO: {', '.join(d.isoformat() for d in user.pto_dates)}]"
        allocs = ", ".join(
            f"{a.project_name} {a.week_start.isoformat()}: {a.hours:g}h" for a in user.allocations
        )
        line = (
            f"- {user.name} [ID: {user.id}] ({user.display_role}){notes}: "
            f"{allocated:g}h allocated, {available:g}h available this week\n"
            f"      Allocations: {allocs or 'none'}"
        )
        if user.specialty_notes:
            line += f"\n      Specialty: {user.specialty_notes}"
        user_lines.append(line)

    project_lines = []
    for project in snapshot.projects:
        burn = project.burn_rate
        pct = round(burn * 100) if burn is not None else 0
        project_lines.append(
            f"- {project.name} [ID: {project.id}] ({project.client_name}): "
            f"{project.hours_used:g}/{project.budget_hours:g}h ({pct}%)"
        )

    return (
        f"\n=== CURRENT TEAM STATUS (Week of {week.isoformat()}) ===\n\n"
        "TEAM MEMBERS:\n"
        + ("\n".join(user_lines) or "none")
        + "\n\nACTIVE PROJECTS:\n"
        + ("\n".join(project_lines) or "none")
        + "\n\n=== IMPORTANT: Use the [ID: xxx] values when calling functions ===\n"
        "=== When matching for coverage, use Specialty notes to find the right discipline match ===\n"
    )
