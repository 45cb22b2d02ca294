"""Example showing a small banking policy with references and negation."""

import asyncio

import clearance

ACCOUNTS = {
    "acc-1": {"id": "acc-1", "owner_id": 999, "country": "LT"},
    "acc-2": {"id": "acc-2", "owner_id": 7, "country": "GB"},
}


async def find_accounts(refs):
    """Stand-in for a database lookup; unknown ids resolve to None."""
    await asyncio.sleep(0)
    return [ACCOUNTS.get(ref) for ref in refs]


@clearance.callback_style
def can_revert(user, transaction, request, done):
    done(None, user["role"] == "cfo" and request["ip"] == "10.0.0.99")


async def main():
    clearance.policy(
        {
            "account": {
                "resolve_refs": find_accounts,
                "operations": {
                    "open": lambda user: user["role"] == "teller",
                    "read": lambda user, account: account["owner_id"] == user["id"],
                },
            },
            "transaction": {
                "operations": {"revert": can_revert},
            },
        }
    )

    teller = clearance.check({"id": 999, "role": "teller"})

    await teller.can.open.account()
    print("✅ teller may open accounts")

    account = await teller.can.read.account(ref="acc-1")
    print(f"✅ teller may read {account['id']}")

    try:
        await teller.can.read.account(refs=["acc-1", "acc-2"])
    except clearance.Unauthorized:
        print("⛔ teller may not read every account")

    print(f"🔍 teller cannot revert: {await clearance.ask({'role': 'teller'}).cannot.revert.transaction(context={'ip': '10.0.0.1'})}")


if __name__ == "__main__":
    asyncio.run(main())
