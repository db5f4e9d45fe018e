import os
from html import escape

from teamformer.schemas import TeamNotification


def team_link() -> str:
    frontend = os.getenv("FRONTEND_URL", "http://localhost:5173").rstrip("/")
    return f"{frontend}/my-team"


def team_email_subject(notification: TeamNotification) -> str:
    return f"Your team for {notification.hackathon_title}: {notification.team_name}"


def _teammates_line(notification: TeamNotification) -> str:
    if not notification.teammate_names:
        return "You are flying solo on this one."
    return "Your teammates: " + ", ".join(notification.teammate_names)


def team_email_text(notification: TeamNotification) -> str:
    return (
        f"Hi {notification.recipient_name},\n\n"
        f"Registration for {notification.hackathon_title} has closed and teams are ready.\n"
        f"Team: {notification.team_name}\n"
        f"Problem statement: {notification.problem_statement}\n"
        f"{_teammates_line(notification)}\n\n"
        f"See your team: {team_link()}\n"
    )


def team_email_html(notification: TeamNotification) -> str:
    if notification.teammate_names:
        teammates = "".join(f"<li>{escape(name)}</li>" for name in notification.teammate_names)
        teammates_html = f"<p>Your teammates:</p><ul>{teammates}</ul>"
    else:
        teammates_html = "<p>You are flying solo on this one.</p>"
    return f"""
      <p>Hi {escape(notification.recipient_name)},</p>
      <p>Registration for <strong>{escape(notification.hackathon_title)}</strong> has closed and teams are ready.</p>
      <p>Team: <strong>{escape(notification.team_name)}</strong></p>
      <p>Problem statement: {escape(notification.problem_statement)}</p>
      {teammates_html}
      <p><a href="{escape(team_link())}">See your team</a></p>
    """
