# turnrelay

Asyncio building blocks for a TURN relay (RFC 5766) and its clients. Addresses are `(host, port)` tuples and lifetimes are seconds, given as floats.

## Server side

- `turnrelay.five_tuple` has `Protocol` (`UDP`, `TCP`) and `FiveTuple`. A `FiveTuple` is a frozen dataclass of protocol, source address and destination address. `FiveTuple.fingerprint()` returns its string key, for example `UDP_0.0.0.0:3478_0.0.0.0:3480`.
- `turnrelay.permission` has `Permission`, a permission for one peer IP address. It starts on a lifetime timer (`start`, `refresh`, `stop`). When the timer expires, the permission removes itself from the map it belongs to. `PERMISSION_TIMEOUT` is five minutes.
- `turnrelay.channel_bind` has `ChannelBind`, a channel number bound to a peer address. It uses the same kind of expiring timer.
- `turnrelay.allocation` has `Allocation`. It holds the permissions, keyed by peer IP, and the channel bindings of one five-tuple.
  - `add_channel_bind` raises `ChannelConflictError` if the number is already bound to another peer, or the peer to another number. It also installs a permission for the peer.
  - `close` stops every timer and raises `AllocationClosedError` when the allocation is already closed.
  - When its lifetime expires, an allocation removes itself from its manager's map and closes.
- `turnrelay.allocation_manager` has `Manager` and `RelayAddressGenerator`.
  - `RelayAddressGenerator.allocate_conn` binds an asyncio UDP socket to use as a relay socket.
  - `Manager.create_allocation` raises `LifetimeZeroError` for a zero lifetime and `DuplicateFiveTupleError` for a five-tuple that is already allocated.
  - `get_allocation`, `delete_allocation` and `close` work on the held allocations.
  - `create_reservation` and `get_reservation` keep a port under a token for 30 seconds.
  - `get_random_even_port` returns a port that the generator can bind.

```python
import asyncio

from turnrelay.allocation_manager import Manager, RelayAddressGenerator
from turnrelay.five_tuple import FiveTuple


async def main():
    manager = Manager(RelayAddressGenerator("127.0.0.1"))
    five_tuple = FiveTuple(src_addr=("127.0.0.1", 5000), dst_addr=("127.0.0.1", 3478))
    allocation = await manager.create_allocation(five_tuple, None, 0, 600.0)
    print(allocation.relay_addr)
    manager.close()


asyncio.run(main())
```

## Authentication

`turnrelay.auth` contains the following:

- `generate_auth_key(username, realm, password)` returns the MD5 digest of `username:realm:password`.
- `generate_long_term_credentials(shared_secret, duration)` returns a username and a password. The username is the Unix time `duration` seconds from now. The password is the base64 HMAC-SHA1 of the username.
- `AuthHandler` looks keys up in a fixed mapping. It raises `LookupError` for an unknown user.
- `LongTermAuthHandler` accepts usernames made by `generate_long_term_credentials`. It raises `ExpiredUsernameError` once the time in the username has passed, and `ValueError` for a username that is not a number.

```python
from turnrelay.auth import AuthHandler, generate_auth_key

password = "password"
key = generate_auth_key("user", "example.com", password)
handler = AuthHandler({"user": key})
assert handler.auth_handle("user", "example.com", ("127.0.0.1", 5000)) == key
```

## Client side

- `turnrelay.binding` has `BindingManager`. It assigns channel numbers from 0x4000 to 0x7FFF, wrapping around, and indexes each `Binding` by address and by number. A `Binding` carries a `BindingState` and a refresh time.
- `turnrelay.client_permission` has `PermissionMap`, which keeps a `PermState` for each peer IP and ignores the port.
- `turnrelay.periodic_timer` has `PeriodicTimer`, which awaits `handler.on_timeout(timer_id)` every interval until it is stopped. `TimerIdRefresh` names the timer.
- `turnrelay.transaction` has `Transaction` and `TransactionMap`.
  - A transaction retransmits its raw request through any object with an async `send_to(data, addr)`. The interval starts at the configured one and doubles each time, up to 1600 ms.
  - After the seventh attempt, or when a send fails, the transaction reports a `TransactionError` result.
  - `write_result` and `wait_for_result` pass the `TransactionResult` to the waiter.

## What this package does not do

This package has no encoder or decoder for STUN or TURN messages. It has no server that answers Allocate, Refresh, CreatePermission or ChannelBind requests. It does not forward datagrams between relay sockets and clients. It has no client that allocates and sends through a relay, and it installs no command-line program. The pieces above are the state and timing parts that such a server or client would be built from.

## Running the tests

```
pip install -e ".[test]"
pytest
```