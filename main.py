"""Terminal chat loop for the enrollment assistant."""
import argparse
import uuid

from dotenv import load_dotenv

# Load environment variables from .env file BEFORE importing modules that depend on them
load_dotenv()

from config import DATABASE_URL, GEMINI_MODEL, configure_logging
from ai import flush_traces
from services import create_chat_service


def _print_snapshot(snapshot) -> None:
    print("\nCourses:")
    for course in snapshot.available_courses:
        marker = "*" if course["id"] in snapshot.enrolled_courses else " "
        print(f" {marker} {course['id']:<8} {course['enrolled_count']:>3}/{course['capacity']:<3} {course['name']}")
    if snapshot.current_student_id:
        print(f"Current student: {snapshot.current_student_name} ({snapshot.current_student_id})")
    print()


def main(session_id: str, database_url: str, show_history: bool = False):
    """Run the interactive chat loop."""
    print("=" * 60)
    print("Student Enrollment Assistant")
    print("=" * 60)
    print(f"Model: {GEMINI_MODEL}")
    print(f"Session: {session_id}")
    print()

    service = create_chat_service(database_url)

    if show_history:
        for message in service.get_history(session_id):
            label = "You" if message["role"] == "user" else "Assistant"
            print(f"{label}: {message['content']}\n")

    print("Type 'quit', 'exit', or 'q' to end. Type 'courses' to show the course list.")
    print("-" * 60)
    print()

    while True:
        try:
            user_input = input("You: ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\n\nGoodbye!")
            break

        if not user_input:
            continue

        if user_input.lower() in ['quit', 'exit', 'q']:
            print("\nGoodbye!")
            break

        if user_input.lower() == 'courses':
            _print_snapshot(service.get_snapshot(session_id))
            continue

        response = service.process_message(user_input, session_id=session_id)
        print(f"\nAssistant: {response.message}\n")

    service.end_session(session_id)
    flush_traces()


def cli():
    """Parse command line arguments and start the chat loop."""
    parser = argparse.ArgumentParser(description="Student Enrollment Assistant")
    parser.add_argument("--session", default=None, help="Session ID to resume (a new one is generated by default)")
    parser.add_argument("--database-url", default=DATABASE_URL, help="SQLAlchemy database URL")
    parser.add_argument("--history", action="store_true", help="Print the session's stored history on start")
    parser.add_argument("--log-level", default="warning", choices=["debug", "info", "warning", "error"], help="Logging level")
    args = parser.parse_args()

    configure_logging(args.log_level)
    main(
        session_id=args.session or str(uuid.uuid4()),
        database_url=args.database_url,
        show_history=args.history,
    )


if __name__ == "__main__":
    cli()
