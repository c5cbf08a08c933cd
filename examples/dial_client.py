"""
Dial client example.

Demonstrates talking to a running emulator the way a terminal program does:
send AT commands, dial, exchange data, escape and hang up.
"""

import socket
import time

# Emulator address and a phonebook number to dial
HOST = "127.0.0.1"
PORT = 5000
NUMBER = "555-1234"


def send(sock: socket.socket, line: str) -> None:
    sock.sendall(line.encode("ascii") + b"\r")
    time.sleep(0.3)


def receive(sock: socket.socket) -> str:
    sock.settimeout(0.5)
    chunks = []
    try:
        while True:
            data = sock.recv(4096)
            if not data:
                break
            chunks.append(data)
    except socket.timeout:
        pass
    return b"".join(chunks).decode("ascii", errors="replace")


def main():
    """Main function."""
    print("HayesModem - Dial Client Example\n")

    with socket.create_connection((HOST, PORT)) as sock:
        print(receive(sock))

        send(sock, "ATE0")
        print(receive(sock))

        send(sock, f"ATDT{NUMBER}")
        time.sleep(3)
        reply = receive(sock)
        print(reply)

        if "CONNECT" not in reply:
            print("Dial failed.")
            return

        # Online: bytes go straight to the remote service
        sock.sendall(b"\r\n")
        print(receive(sock))

        # Back to command mode without hanging up, then hang up
        time.sleep(1)
        sock.sendall(b"+++")
        time.sleep(1)
        print(receive(sock))
        send(sock, "ATH")
        print(receive(sock))

    print("\nConnection closed.")


if __name__ == "__main__":
    main()
