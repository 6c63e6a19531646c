import asyncio
import logging
import os
import sys

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from chatcontext import ChatClient, ClientConfig, HistoryManager, HttpTransport, SQLiteHistoryStore


def print_metrics(metrics):
    if metrics['dropped']:
        print(f"[window] dropped {metrics['dropped']} turns, {metrics['tokens_after']}/{metrics['budget']} tokens")


async def main():
    print("--- Chat Demo ---")

    # 1. Setup: OPENAI_API_KEY, OPENAI_MODEL, ... from the environment or a .env file
    config = ClientConfig.from_env()
    if not config.api_key:
        print("OPENAI_API_KEY not set. Skipping demo.")
        return

    if os.getenv("CHATCONTEXT_DEBUG"):
        logging.basicConfig(level=logging.DEBUG)

    store = SQLiteHistoryStore("chat_history.db")

    async with HttpTransport(config) as transport:
        client = ChatClient(config, transport, store, metrics_callback=print_metrics)

        # 2. Batch query
        reply, tokens = await client.query("In one sentence, what is a context window?")
        print(f"\n{reply}\n({tokens} tokens)")

        # 3. Streamed follow-up, written to stdout as it is decoded
        if client.capabilities.supports_streaming:
            print()
            await client.stream("And why does it need to be truncated?")

    # 4. Render the stored thread
    print(await HistoryManager(store).print(client.thread))


if __name__ == "__main__":
    asyncio.run(main())
