import logging
from html import escape
from typing import List, Optional, Tuple, Union

from fastapi import BackgroundTasks
from starlette.concurrency import run_in_threadpool

from portal.errors import ExternalServiceError
from portal.settings import settings
from portal.utils.email_utils import email_sender

logger = logging.getLogger(__name__)

EVENT_NAME = "Vadodara Hackathon 6.0"


def send_or_raise(to_email: Union[str, List[str]], subject: str, body: str) -> None:
    """
    Синхронная отправка через SMTP. Вызывается только из пула потоков или фоновой задачи.

    Raises:
        ExternalServiceError: SMTP не настроен или отправка не удалась
    """
    if not email_sender.configured:
        raise ExternalServiceError(
            "Missing SMTP_USER or SMTP_PASSWORD environment variables. Could not send email."
        )
    if not email_sender.send_email(to_email=to_email, subject=subject, body=body, is_html=True):
        raise ExternalServiceError(f"Could not send email to {to_email}.")
    logger.info(f"Письмо \"{subject}\" отправлено: {to_email}")


async def deliver(to_email: Union[str, List[str]], subject: str, body: str) -> None:
    """Письмо, которое является основным результатом операции; ошибка отправки пробрасывается"""
    await run_in_threadpool(send_or_raise, to_email, subject, body)


def notify_best_effort(to_email: Union[str, List[str]], subject: str, body: str) -> bool:
    """Второстепенное уведомление: ошибка только логируется и не влияет на результат операции"""
    try:
        send_or_raise(to_email, subject, body)
        return True
    except ExternalServiceError as e:
        logger.warning(f"Уведомление \"{subject}\" для {to_email} не отправлено: {e}")
        return False


async def notify(
        background_tasks: Optional[BackgroundTasks],
        to_email: Union[str, List[str]],
        subject: str,
        body: str
) -> None:
    """
    Ставит второстепенное уведомление в фоновые задачи ответа. Без них (вызов вне
    HTTP-запроса) письмо отправляется в пуле потоков до возврата.
    """
    if background_tasks is not None:
        background_tasks.add_task(notify_best_effort, to_email, subject, body)
        return
    await run_in_threadpool(notify_best_effort, to_email, subject, body)


def render_email(title: str, body: str, button_link: str = None, button_text: str = None) -> str:
    button = ""
    if button_link and button_text:
        button = f"""
                                    <tr>
                                        <td align="center" style="padding: 20px 0;">
                                            <a href="{button_link}" style="background-color: #FF8C00; color: #ffffff; padding: 12px 24px; border-radius: 6px; text-decoration: none;">{button_text}</a>
                                        </td>
                                    </tr>"""

    return f"""
    <!DOCTYPE html>
    <html>
        <head>
            <meta charset="utf-8">
            <meta name="viewport" content="width=device-width, initial-scale=1.0">
        </head>
        <body style="margin: 0; padding: 0; background-color: #f5f5f5;">
            <table border="0" cellpadding="0" cellspacing="0" width="100%" style="font-family: Arial, sans-serif;">
                <tr>
                    <td align="center" style="padding: 20px 0;">
                        <table border="0" cellpadding="0" cellspacing="0" width="600" style="background-color: #ffffff; border-radius: 8px;">
                            <tr>
                                <td align="center" style="padding: 30px 30px 10px 30px;">
                                    <h1 style="color: #FF4500; font-size: 24px; margin: 0;">{title}</h1>
                                </td>
                            </tr>
                            <tr>
                                <td style="padding: 10px 30px;">{body}</td>
                            </tr>{button}
                            <tr>
                                <td align="center" style="padding: 20px 30px; color: #666666; font-size: 14px;">
                                    <p style="margin: 0;">This is an automated message from the {EVENT_NAME} portal.</p>
                                </td>
                            </tr>
                        </table>
                    </td>
                </tr>
            </table>
        </body>
    </html>
    """


def new_member_email(leader_name: str, team_name: str, member: dict) -> Tuple[str, str]:
    body = f"""
        <p>Hi {escape(leader_name)},</p>
        <p>A new member has just joined your team, <strong>{escape(team_name)}</strong>:</p>
        <p><strong>Name:</strong> {escape(member['name'])}<br>
           <strong>Email:</strong> {escape(member['email'])}<br>
           <strong>Contact:</strong> {escape(member.get('contact_number') or 'N/A')}</p>
    """
    subject = f"New Member Alert: {member['name']} joined {team_name}"
    return subject, render_email("A New Member Has Joined Your Team!", body,
                                 f"{settings.base_url}/leader", "Go to Your Dashboard")


def member_left_email(leader_name: str, team_name: str, member_name: str) -> Tuple[str, str]:
    body = f"""
        <p>Hi {escape(leader_name)},</p>
        <p><strong>{escape(member_name)}</strong> has left your team <strong>{escape(team_name)}</strong>.</p>
        <p>You can invite a new member from your dashboard.</p>
    """
    return f"Member Update for your team: {team_name}", render_email(
        "A Member Has Left Your Team", body, f"{settings.base_url}/leader", "Go to Your Dashboard")


def _credentials_body(name: str, email: str, password: str, intro: str) -> str:
    return f"""
        <p>Hi {escape(name)},</p>
        <p>{intro}</p>
        <p>Please use the following credentials to log in:</p>
        <p><strong>Email:</strong> {escape(email)}<br>
           <strong>Password:</strong> {escape(password)}</p>
        <p><strong>Important:</strong> You will be required to change this temporary password upon your first login.</p>
    """


def team_credentials_email(name: str, email: str, password: str, team_name: str) -> Tuple[str, str]:
    intro = (f"You have been added to team <strong>{escape(team_name)}</strong> for the {EVENT_NAME}. "
             f"An account has been created for you on the portal.")
    return f"You're Invited to Join Team {team_name} on the {EVENT_NAME} Portal!", render_email(
        "You're Invited!", _credentials_body(name, email, password, intro),
        f"{settings.base_url}/login", "Login to Your Dashboard")


def jury_credentials_email(name: str, email: str, password: str, panel_name: str) -> Tuple[str, str]:
    intro = (f"You have been invited to be a jury member for the {EVENT_NAME} as part of "
             f"<strong>Panel: {escape(panel_name)}</strong>. An account has been created for you on the portal.")
    return f"[Invitation] You are invited as a Jury Member for {EVENT_NAME}", render_email(
        "You've been Invited as a Jury Member!", _credentials_body(name, email, password, intro),
        f"{settings.base_url}/login", "Login to Your Dashboard")


def spoc_credentials_email(name: str, email: str, password: str, institute: str) -> Tuple[str, str]:
    intro = (f"An account has been created for you as the Single Point of Contact (SPOC) for "
             f"<strong>{escape(institute)}</strong>. As a SPOC, you can view and manage the teams "
             f"registered from your institute.")
    return f"Your SPOC Account for the {EVENT_NAME} Portal", render_email(
        "Welcome, SPOC!", _credentials_body(name, email, password, intro),
        f"{settings.base_url}/login", "Login to Your Dashboard")


def spoc_request_email(name: str, email: str, institute: str) -> Tuple[str, str]:
    body = f"""
        <p>A new SPOC registration request is waiting for approval:</p>
        <p><strong>Name:</strong> {escape(name)}<br>
           <strong>Email:</strong> {escape(email)}<br>
           <strong>Institute:</strong> {escape(institute)}</p>
    """
    return f"New SPOC Request: {institute}", render_email(
        "New SPOC Registration Request", body, f"{settings.base_url}/admin/spoc-requests", "Review Requests")


def nomination_email(leader_name: str, team_name: str) -> Tuple[str, str]:
    body = f"""
        <p>Hi {escape(leader_name)},</p>
        <p>Congratulations! Your team <strong>{escape(team_name)}</strong> has been nominated by your institute.</p>
        <p>Please add your mentor details on the dashboard.</p>
    """
    return f"Your team {team_name} has been nominated", render_email(
        "Your Team Has Been Nominated!", body, f"{settings.base_url}/leader", "Go to Your Dashboard")


def mentor_update_email(team_name: str, mentor: dict) -> Tuple[str, str]:
    body = f"""
        <p>The leader of team <strong>{escape(team_name)}</strong> has updated the mentor details:</p>
        <p><strong>Name:</strong> {escape(mentor['name'])}<br>
           <strong>Email:</strong> {escape(mentor['email'])}<br>
           <strong>Phone:</strong> {escape(mentor.get('phone_number') or 'N/A')}</p>
    """
    return f"Mentor details updated for team {team_name}", render_email(
        "Mentor Details Updated", body, f"{settings.base_url}/spoc/teams", "View Teams")


def announcement_email(title: str, content: str, url: str = None) -> Tuple[str, str]:
    body = f"<p>{escape(content)}</p>"
    return f"[Announcement] {title}", render_email(title, body, url, "Learn More" if url else None)
