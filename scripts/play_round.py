"""
Plays one round against a running server and prints the event stream.

    python scripts/play_round.py --address 0x7099...79c8 --side 2 --amount 10000000000000000
"""

import argparse
import asyncio
import json

import httpx
import websockets

BASE_URL = "http://127.0.0.1:8000"
WS_URL = "ws://127.0.0.1:8000/ws"


async def watch_events(address: str, stop: asyncio.Event):
    async with websockets.connect(f"{WS_URL}?address={address}") as websocket:
        while not stop.is_set():
            try:
                message = await asyncio.wait_for(websocket.recv(), timeout=0.5)
            except asyncio.TimeoutError:
                continue
            print(f"< {message if isinstance(message, str) else message.decode()}")


async def play(address: str, side: int, amount: int):
    stop = asyncio.Event()
    watcher = asyncio.create_task(watch_events(address, stop))
    headers = {"X-Caller-Address": address}

    async with httpx.AsyncClient(base_url=BASE_URL, headers=headers) as client:
        for path, body in (("/api/deposit", {"amount": amount}), ("/api/pick", {"side": side})):
            response = await client.post(path, json=body)
            print(f"{path}: {response.status_code} {response.text}")

        response = await client.post("/api/flip")
        print(f"/api/flip: {response.status_code} {response.text}")
        if response.status_code == 200:
            request_id = response.json()["request_id"]
            response = await client.post(f"/vrf/fulfill/{request_id}")
            print(f"/vrf/fulfill: {response.status_code} {json.dumps(response.json())}")

        response = await client.post("/api/withdraw")
        print(f"/api/withdraw: {response.status_code} {response.text}")

    await asyncio.sleep(1)
    stop.set()
    await watcher


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Play one coin flip round")
    parser.add_argument("--address", default="0x70997970c51812dc3a010c7d01b50e0d17dc79c8")
    parser.add_argument("--side", type=int, default=2, help="1 = heads, 2 = tails")
    parser.add_argument("--amount", type=int, default=10**16, help="stake in wei")
    args = parser.parse_args()

    asyncio.run(play(args.address, args.side, args.amount))
