#!/usr/bin/env python3
"""
WebSocket Test Client for the relaychat server

Usage:
    python ws_test_client.py <server_url> <name>

Examples:
    python ws_test_client.py ws://localhost:8080 Alice
    python ws_test_client.py wss://your-server.com Bob  # For HTTPS

Commands (while connected):
    - Type any message and press Enter to send a chat message
    - '/file <name>' announces an already uploaded file
    - '/call' sends a dummy call offer to everyone else
    - Type 'quit' or 'exit' to disconnect
    - Press Ctrl+C to force disconnect
"""

import asyncio
import json
import sys

import websockets


def print_message(msg: dict) -> None:
    """Pretty print a received WebSocket message."""
    msg_type = msg.get("type", "unknown")

    print()
    print("=" * 60)

    if msg_type == "connected":
        print("🔗 CONNECTED")
        print(f"   Connection id: {msg.get('conn_id', 'N/A')}")
        users = msg.get("users", {})
        print(f"   Online: {', '.join(users.values()) or '(nobody yet)'}")

    elif msg_type in ("join_chat", "leave_chat"):
        verb = "joined" if msg_type == "join_chat" else "left"
        users = msg.get("users", {})
        print(f"👥 {msg.get('name')} has {verb} the chat")
        print(f"   Online ({len(users)}): {', '.join(users.values())}")

    elif msg_type == "chat_message":
        print(f"💬 {msg.get('user', 'Unknown')}: {msg.get('message', '')}")

    elif msg_type == "file_upload":
        print(f"📎 {msg.get('user', 'Unknown')} uploaded a file: {msg.get('url')}")

    elif msg_type in ("incoming_call", "call_accepted"):
        label = "INCOMING CALL" if msg_type == "incoming_call" else "CALL ACCEPTED"
        print(f"📞 {label} from {msg.get('user')} ({msg.get('from_conn_id')})")
        print(f"   Signal: {json.dumps(msg.get('signal'))[:80]}")

    elif msg_type == "error":
        print(f"⚠️  ERROR [{msg.get('code')}]: {msg.get('detail')}")

    else:
        print(f"📨 UNKNOWN MESSAGE TYPE: {msg_type}")
        print(f"   {json.dumps(msg, indent=2, default=str)}")

    print("=" * 60)


async def receive_messages(websocket) -> None:
    """Task to continuously receive and print messages."""
    try:
        async for message in websocket:
            try:
                msg = json.loads(message)
                print_message(msg)
                print("\n[You] > ", end="", flush=True)
            except json.JSONDecodeError:
                print(f"\n⚠️  Received non-JSON message: {message}")
                print("\n[You] > ", end="", flush=True)
    except websockets.exceptions.ConnectionClosed as e:
        print(f"\n❌ Connection closed: {e}")


def build_event(user_input: str, name: str) -> dict:
    """Turn a line of input into a client event."""
    if user_input.startswith("/file "):
        return {"type": "file_upload", "user": name, "file_name": user_input[6:].strip()}
    if user_input == "/call":
        return {"type": "start_call", "user": name, "signal": {"type": "offer", "sdp": "test"}}
    return {"type": "chat_message", "user": name, "message": user_input, "color": "#007bff"}


async def send_messages(websocket, name: str) -> None:
    """Task to join, then read user input and send events."""
    loop = asyncio.get_running_loop()

    await websocket.send(json.dumps({"type": "join_chat", "name": name, "color": "#007bff"}))
    print(f"\n✅ Joined as {name}! Type a message and press Enter to send.")
    print("   Type 'quit' or 'exit' to disconnect.\n")

    while True:
        try:
            # Read input in a non-blocking way
            print("[You] > ", end="", flush=True)
            user_input = await loop.run_in_executor(None, sys.stdin.readline)
            user_input = user_input.strip()

            if not user_input:
                continue

            if user_input.lower() in ("quit", "exit"):
                print("👋 Disconnecting...")
                await websocket.close()
                break

            await websocket.send(json.dumps(build_event(user_input, name)))
            print(f"   ✓ Sent: {user_input}")

        except websockets.exceptions.ConnectionClosed:
            print("\n❌ Connection was closed")
            break


async def main(server_url: str, name: str) -> None:
    """Main function to connect and handle WebSocket communication."""

    ws_url = f"{server_url}/v1/ws"

    print(f"🔌 Connecting to: {ws_url}")
    print("-" * 60)

    try:
        async with websockets.connect(ws_url) as websocket:
            receive_task = asyncio.create_task(receive_messages(websocket))
            send_task = asyncio.create_task(send_messages(websocket, name))

            # Wait for either task to complete (usually send_task when user quits)
            done, pending = await asyncio.wait(
                [receive_task, send_task],
                return_when=asyncio.FIRST_COMPLETED
            )

            for task in pending:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

    except websockets.exceptions.InvalidStatus as e:
        print(f"❌ Connection failed with status code: {e.response.status_code}")
    except websockets.exceptions.InvalidURI as e:
        print(f"❌ Invalid URI: {e}")
        print("   Make sure the server URL starts with ws:// or wss://")
    except ConnectionRefusedError:
        print("❌ Connection refused. Is the server running?")


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print(__doc__)
        print(f"Usage: python {sys.argv[0]} <server_url> <name>")
        sys.exit(1)

    server_url = sys.argv[1].rstrip("/")
    name = sys.argv[2]

    if not server_url.startswith(("ws://", "wss://")):
        print("⚠️  Warning: URL should start with ws:// or wss://")
        print("   Assuming ws:// prefix...")
        server_url = f"ws://{server_url}"

    try:
        asyncio.run(main(server_url, name))
    except KeyboardInterrupt:
        print("\n\n👋 Interrupted by user. Goodbye!")
        sys.exit(0)
