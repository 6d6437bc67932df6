"""CLI tools for Letter to You."""

import click

from letter_to_you.core.async_utils import run_async
from letter_to_you.core.errors import LetterError
from letter_to_you.db.enums import Tone
from letter_to_you.db.session import SessionLocal
from letter_to_you.services import question_bank, scheduled_delivery_service, session_backup_service
from letter_to_you.services.safety import CRISIS_RESOURCES
from letter_to_you.workflow.api_client import LetterApiClient
from letter_to_you.workflow.interview import InterviewSession, InterviewState
from letter_to_you.workflow.orchestrator import LetterOrchestrator

BACK_COMMAND = ":back"


@click.group()
def cli():
    """Letter to You CLI tools."""
    pass


@cli.command()
def modes():
    """List every reflection mode and how many questions it asks."""
    for mode in question_bank.all_modes():
        price = "paid" if mode.paid else "free"
        count = len(question_bank.select_questions(mode.id))
        click.echo(f"{mode.id:<18} {mode.name:<28} {count:>2} questions  ({price})")


def _echo_crisis_resources() -> None:
    click.echo()
    click.echo(CRISIS_RESOURCES["title"])
    click.echo(CRISIS_RESOURCES["message"])
    for resource in CRISIS_RESOURCES["resources"]:
        contact = resource.get("phone") or resource.get("url")
        click.echo(f"  - {resource['name']}: {contact} ({resource['description']})")


def _ask(session: InterviewSession) -> str | None:
    """Prompt for the current question. Returns BACK_COMMAND, an answer, or None to skip."""
    question = session.current_question
    click.echo()
    click.echo(f"[{session.index + 1}/{len(session.questions)}] {question.section_name}")
    click.echo(question.prompt)
    if question.options:
        for number, option in enumerate(question.options, start=1):
            click.echo(f"  {number}. {option}")
        choice = click.prompt("Choose an option (blank to skip)", default="", show_default=False)
        if choice.isdigit() and 1 <= int(choice) <= len(question.options):
            return question.options[int(choice) - 1]
        return choice or None
    answer = click.prompt("Your answer (blank to skip)", default="", show_default=False)
    return answer or None


async def _run_interview(
    mode_id: str,
    api_url: str,
    token: str | None,
    user_id: str | None,
    purchase_id: str | None,
) -> None:
    async with LetterApiClient(api_url, access_token=token) as api:
        orchestrator = LetterOrchestrator(api, user_id=user_id, purchase_id=purchase_id)
        session = InterviewSession(mode_id, orchestrator.generate)
        click.echo(f"{session.mode_name}: {len(session.questions)} questions. Type {BACK_COMMAND} to go back.")

        while session.state == InterviewState.BROWSING:
            answer = _ask(session)
            if answer == BACK_COMMAND:
                session.prev()
                continue
            if answer and answer in session.current_question.options:
                session.quick_answer(answer)
            elif answer:
                session.answer(answer)

            question = session.current_question
            wants_follow_up = (
                question.follow_up
                and answer
                and not session.follow_up_open.get(question.id)
                and click.confirm(f"Go deeper? {question.follow_up}", default=False)
            )
            if wants_follow_up:
                session.toggle_follow_up()
                session.answer_follow_up(click.prompt("Follow-up", default="", show_default=False))

            if session.is_last and mode_id != question_bank.QUICK_MODE_ID:
                tone = click.prompt(
                    "Tone",
                    type=click.Choice([t.value for t in Tone]),
                    default=session.tone,
                )
                session.set_tone(tone)

            if session.is_last:
                click.echo("\nWriting your letter...")
            if answer or question.id in session.answers:
                await session.next()
            else:
                await session.skip()

            if session.error:
                click.echo(session.error, err=True)
                if not click.confirm("Try again?", default=True):
                    return

        if session.state == InterviewState.CRISIS_REDIRECT:
            _echo_crisis_resources()
            return

        letter = session.result
        click.echo()
        click.echo(letter.content)
        for report in await orchestrator.drain():
            if report.notice:
                click.echo(f"\n{report.notice}", err=True)


@cli.command()
@click.option("--mode", "mode_id", required=True, help="Mode id (see `modes`)")
@click.option("--api-url", default="http://localhost:8000", show_default=True, help="Letters API base URL")
@click.option("--token", envvar="LETTER_ACCESS_TOKEN", default=None, help="Access token (saves the letter to your account)")
@click.option("--user-id", default=None, help="Your user id (needed to save the letter)")
@click.option("--purchase-id", default=None, help="Purchase to consume for a paid mode")
def interview(mode_id: str, api_url: str, token: str | None, user_id: str | None, purchase_id: str | None):
    """
    Answer a guided interview in the terminal and get your letter.

    Example:
        letter-to-you interview --mode quick
    """
    try:
        run_async(_run_interview(mode_id, api_url, token, user_id, purchase_id))
    except LetterError as e:
        raise click.ClickException(e.message)


@cli.command()
def send_scheduled_emails():
    """
    Deliver future letters that are due (one batch).

    Example:
        letter-to-you send-scheduled-emails
    """
    db = SessionLocal()
    try:
        result = run_async(scheduled_delivery_service.send_due_emails(db))
    except LetterError as e:
        raise click.ClickException(e.message)
    finally:
        db.close()

    click.echo(f"✓ {result.message}")
    click.echo(f"  Processed: {result.processed}  Sent: {result.success}  Failed: {result.failed}")
    for error in result.errors:
        click.echo(f"  ❌ {error}")


@cli.command()
def purge_session_backups():
    """Delete expired session backups."""
    db = SessionLocal()
    try:
        removed = session_backup_service.purge_expired(db)
    finally:
        db.close()
    click.echo(f"✓ Removed {removed} expired session backup(s)")


if __name__ == "__main__":
    cli()
