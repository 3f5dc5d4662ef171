from networking.connection import Connection


def handle_echo(conn: Connection) -> None:
    """
    Copy every byte received on `conn` back to it, unchanged, until the
    peer closes its side.
    """
    while True:
        chunk = conn.read_chunk()
        if not chunk:
            return
        conn.write(chunk)
