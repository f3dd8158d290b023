import argparse
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from app import repo
from app.auth.security import create_access_token
from app.services import lifecycle

DEMO_ANSWERS = {
    "marriage_understanding": "A lifelong partnership built on trust and shared purpose.",
    "life_goals": "Build a warm home and keep growing together.",
    "partner_traits": "Honest, patient, kind.",
    "hobbies_interests": "Reading, hiking, cooking for friends.",
    "religious_practice_importance": "Central to daily life.",
    "spiritual_growth": "Learning together and reflecting often.",
    "sect_preference": "No strong preference.",
}


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed demo members and a pairing")
    parser.add_argument("--n-users", type=int, default=4)
    parser.add_argument("--email-prefix", type=str, default="demo")
    parser.add_argument("--with-pairing", action="store_true", help="connect the first two members and fill their profiles")
    parser.add_argument("--disable-last", action="store_true", help="disable the last created member")
    parser.add_argument("--ttl-minutes", type=int, default=24 * 60)
    args = parser.parse_args()

    created = []
    for i in range(1, args.n_users + 1):
        email = f"{args.email_prefix}{i}@example.com"
        user = repo.create_user(email, display_name=f"{args.email_prefix.title()} {i}")
        if user is None:
            print(f"- skipped {email} (already exists)")
            continue
        created.append(user)

    summary = {"users_created": len(created), "pairing": None}
    if args.with_pairing and len(created) >= 2:
        a, b = str(created[0]["id"]), str(created[1]["id"])
        request = lifecycle.create_request(a, b, "Seeded introduction")
        lifecycle.accept_or_reject(request["id"], b, "approve")
        for uid in (a, b):
            lifecycle.submit_compatibility_answers(uid, DEMO_ANSWERS, religious_background="Muslim")
        summary["pairing"] = lifecycle.get_request(request["id"], a)["connection_stage"]
    if args.disable_last and created:
        repo.disable_user(str(created[-1]["id"]))
        summary["disabled"] = created[-1]["email"]

    print("Seed completed")
    for k, v in summary.items():
        print(f"- {k}: {v}")
    for user in created:
        token = create_access_token(str(user["id"]), user["email"], ttl_minutes=args.ttl_minutes)
        print(f"- {user['email']} {user['id']} token={token}")


if __name__ == "__main__":
    main()
