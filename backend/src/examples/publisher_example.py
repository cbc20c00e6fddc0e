import asyncio
import httpx  # to install: pip install httpx

async def main():
    url = "http://localhost:8000/message"
    async with httpx.AsyncClient() as client:
        # publish a test message to room 'lobby'
        msg = {
            "room": "lobby",
            "username": "alice",
            "message": "hi",
        }
        print("Client Message: ", msg)
        resp = await client.post(url, data=msg)
        print("Server:", resp.status_code)

if __name__ == "__main__":
    asyncio.run(main())
