import asyncio
import json
import httpx

async def main():
    url = "http://localhost:8000/events"
    async with httpx.AsyncClient(timeout=None) as client:
        print("Awaiting messages... (press Ctrl+C to exit)")
        async with client.stream("GET", url) as resp:
            # the server closes the stream on shutdown
            async for line in resp.aiter_lines():
                if line.startswith("data:"):
                    print("Received:", json.loads(line[len("data:"):]))
        print("Stream closed by server.")

if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("Disconnected.")
