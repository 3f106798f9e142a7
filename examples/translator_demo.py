"""Minimal demonstration of the translator agent."""

import asyncio

from translator_core.api import service


async def main() -> None:
    question = "お元気ですか"
    task = service.send_message(question)
    if task is not None:
        await task
    agent = service.get_default_agent()
    print("User:", question)
    if agent.error_message:
        print("Error:", agent.error_message)
    else:
        print("Agent:", agent.store.conversation.messages[-1].text)
    print("Profile:", agent.personalization_summary)
    agent.store.flush()


if __name__ == "__main__":
    asyncio.run(main())
