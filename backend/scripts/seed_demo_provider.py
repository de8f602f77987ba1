from skedify.db.models import Calendar, Provider, SessionType
from skedify.db.session import SessionLocal
from skedify.security.passwords import hash_password


def seed_demo_provider() -> None:
    session = SessionLocal()
    try:
        existing = session.query(Provider).filter(Provider.username == "demo").first()
        if existing is not None:
            print(f"Demo provider already exists with id={existing.id}")
            return

        demo = Provider(
            username="demo",
            email="demo@skedify.local",
            password_hash=hash_password("demo-password"),
            first_name="Demo",
            last_name="Provider",
        )
        session.add(demo)
        session.flush()

        session.add(Calendar(provider_id=demo.id, name="Work", description="Demo calendar"))
        intro_call = SessionType(provider_id=demo.id, name="Intro call", duration_minutes=30)
        session.add(intro_call)
        session.commit()
        print(f"Created demo provider with id={demo.id} booking link={intro_call.unique_link}")
    finally:
        session.close()


if __name__ == "__main__":
    seed_demo_provider()
