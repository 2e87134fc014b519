# campaniagp

A small TCP system that issues and checks Green Pass certificates. It has
three servers and three interactive clients. They talk to one another with
fixed-size binary records. The messages shown to users are in Italian.

| Command                         | Module                           | Role                                                        | Default port |
|---------------------------------|----------------------------------|-------------------------------------------------------------|--------------|
| `campaniagp-server-v`           | `campaniagp.server_v`            | Registry. Stores one Green Pass file per health card ID     | 1036         |
| `campaniagp-vaccination-center` | `campaniagp.vaccination_center`  | Registers a citizen and sends a new Green Pass to Server V  | 1035         |
| `campaniagp-server-g`           | `campaniagp.server_g`            | Checks validity and forwards report changes to Server V     | 1037         |
| `campaniagp-user`               | `campaniagp.user`                | Citizen client for the vaccination centre                   | —            |
| `campaniagp-client-s`           | `campaniagp.client_s`            | Checker app. Asks Server G whether a card's pass is valid   | —            |
| `campaniagp-client-t`           | `campaniagp.client_t`            | Authority client. Suspends or restores a card's pass        | —            |

The package has no third-party dependencies.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Running the servers

Start each server in its own terminal:

```
campaniagp-server-v --directory ./passes
campaniagp-vaccination-center
campaniagp-server-g
```

Every server accepts `--host` (default: all interfaces) and `--port`.
`campaniagp-vaccination-center` and `campaniagp-server-g` also accept
`--server-v-host` (default `127.0.0.1`) and `--server-v-port` (default `1036`)
to find Server V. `campaniagp-server-v` accepts `--directory` (default: the
current directory). It writes one file per health card in that directory,
and each file is named after the card ID.

Each connection is handled in its own thread. When you press Ctrl-C, a server
prints a goodbye, waits three seconds and exits.

## Using the clients

Register a citizen. The host name of the vaccination centre is required, and
`--port` defaults to 1035:

```
campaniagp-user localhost
```

The client asks for a first name, a surname and a health card ID. It repeats
the ID prompt until the ID is exactly 10 bytes long. The vaccination centre
then sends a Green Pass to Server V. The pass starts today and ends six months
later on the same day of the month. Server V stores it as valid.

Check a card:

```
campaniagp-client-s
```

Suspend (`0`) or restore (`1`) a card's Green Pass:

```
campaniagp-client-t
```

`campaniagp-client-s` and `campaniagp-client-t` accept `--host` (default
`127.0.0.1`) and `--port` (default `1037`). Each one waits three seconds before
it prints the server's answer. A client exits with status 1 in three cases:
the connection fails, the reply is malformed, or input ends early.

### What "valid" means

Server G answers with one of three verdicts:

- the Green Pass is valid;
- the Green Pass is not valid;
- the ID does not exist.

A pass is not valid in two cases. It has been suspended with
`campaniagp-client-t`, or the current year is later than the year of its end
date. The check compares only the year. A pass therefore stays valid until the
end of the calendar year in which it expires.

## Library use

The servers and clients can also be driven from Python:

- `campaniagp.protocol` holds the records `Date`, `GreenPass`, `VaxPackage`
  and `ReportPackage`. Each has `pack()` and `unpack(data)`, and a bad record
  raises `ProtocolError`. The module also provides the helpers `encode_text`,
  `decode_text`, `recv_exact`, `send_all` and `install_interrupt_handler`.
- `campaniagp.server_v.GreenPassStore(directory)` has three methods:
  - `save(gp)` stores a pass.
  - `load(card_id)` returns a pass and raises `KeyError` if the card is
    unknown.
  - `set_report(card_id, report)` changes a pass's report.
- `campaniagp.server_g` provides `is_green_pass_valid(gp, today)`,
  `check_id(...)` and `dispatch_report(...)`.
- `campaniagp.vaccination_center` provides `create_start_date(today)` and
  `create_end_date(today)`.
- Each client module has a `run(...)` function. It takes an `input_func` and an
  `output` stream, so it can be driven without a terminal.

## Limitations

- Connections are neither authenticated nor encrypted. Anyone who can reach
  Server V or Server G can register, query or suspend a pass.
- Server V locks its files with `flock`. On platforms without `fcntl`, files
  are read and written without locking.
- Health card IDs are not checked beyond their length. Server V treats an ID
  that contains a path separator as unknown.