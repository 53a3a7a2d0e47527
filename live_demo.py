#!/usr/bin/env python
"""
╔══════════════════════════════════════════════════════════════════════════════╗
║                          EPHEMCHAT LIVE DEMO                                  ║
╚══════════════════════════════════════════════════════════════════════════════╝

Walks through one end-to-end encrypted conversation:
- Background key generation and publication
- Signed, encrypted messages between Alice and Bob
- A tampered envelope and a forged signing key
- Message expiry countdown
- The security audit log

Run with: python live_demo.py [--no-pause]
"""

import asyncio
import sys

from ephemchat.messaging.client import ChatClient
from ephemchat.messaging.profiles import DEFAULT_PROFILE
from ephemchat.messaging.transport import InMemoryDirectory


INTERACTIVE = "--no-pause" not in sys.argv


def print_header(title):
    """Print a formatted section header"""
    print("\n" + "═" * 70)
    print(f"  {title}")
    print("═" * 70)


def print_step(step_num, description):
    """Print a numbered step"""
    print(f"\n  [{step_num}] {description}")


def pause(message="Press ENTER to continue..."):
    """Pause for presenter to explain"""
    if INTERACTIVE:
        print(f"\n  [PAUSE] {message}")
        input()


def show_messages(owner, messages):
    print(f"\n  {owner}'s inbox:")
    for m in messages:
        status = "[OK] verified" if m.verified else "[!] UNVERIFIED"
        if not m.decrypted:
            status = "[X] undecryptable"
        print(f"  - from {m.sender}: {m.content!r}  {status}  "
              f"(expires in {m.seconds_remaining() // 3600}h)")


async def run_demo():
    print("\n" * 2)
    print("╔" + "═" * 68 + "╗")
    print("║" + "EPHEMCHAT - END-TO-END ENCRYPTED EPHEMERAL CHAT".center(68) + "║")
    print("╚" + "═" * 68 + "╝")

    pause("Press ENTER to begin the demonstration...")

    print_header("PART 1: SESSION SETUP")

    directory = InMemoryDirectory()
    alice = ChatClient(directory.transport_for("alice"))
    bob = ChatClient(directory.transport_for("bob"))
    mallory = ChatClient(directory.transport_for("mallory"))

    print_step("1.1", "Security profile")
    for label, value in DEFAULT_PROFILE.describe().items():
        print(f"  - {label}: {value}")

    print_step("1.2", "Generating key pairs in the background")
    for client in (alice, bob, mallory):
        await client.start()
    for client in (alice, bob, mallory):
        await client.wait_ready()
        key = directory.lookup(client.identity)
        print(f"  {client.identity:8s} public key: {key.hex()[:32]}... ({len(key)} bytes)")

    pause()

    print_header("PART 2: ENCRYPTED MESSAGING")

    print_step("2.1", "Alice sends Bob a message")
    envelope = await alice.send_message("bob", "Hello Bob! Meet at 10.")
    print(f"  Salt:       {envelope.salt.hex()}")
    print(f"  IV:         {envelope.iv.hex()}")
    print(f"  Ciphertext: {envelope.ciphertext.hex()[:48]}... ({len(envelope.ciphertext)} bytes)")

    print_step("2.2", "Bob replies")
    await bob.send_message("alice", "See you there.")

    show_messages("Bob", await bob.fetch_messages())
    show_messages("Alice", await alice.fetch_messages())

    pause()

    print_header("PART 3: ATTACKS")

    print_step("3.1", "A byte of an envelope is flipped in transit")
    wire = bytearray(envelope.to_bytes())
    wire[-1] ^= 0x01
    directory.deliver("alice", "bob", bytes(wire), directory.lookup("alice"))

    print_step("3.2", "Mallory replaces Alice's signing key in the directory")
    directory.publish("alice", directory.lookup("mallory", signing=True), signing=True)

    show_messages("Bob", await bob.fetch_messages())

    pause()

    print_header("PART 4: SECURITY AUDIT LOG")
    bob.event_logger.print_audit_log()

    for client in (alice, bob, mallory):
        await client.close()

    print("\n\n" + "═" * 70)
    print("  DEMONSTRATION COMPLETE!")
    print("═" * 70)


def main():
    asyncio.run(run_demo())


if __name__ == "__main__":
    main()
