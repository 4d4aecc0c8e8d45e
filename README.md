# tncbridge

Attach a KISS TNC as a Linux network interface. Frames read from a TUN or TAP
interface are KISS-encoded and sent to the TNC. KISS data frames received from
the TNC are decoded and written back to the interface.

The TNC can be reached in one of three ways:

- through a serial port, given as a device path and a baud rate,
- through KISS over TCP, using `--kisstcp`, `--tcphost` and `--tcpport`,
- through a Unix domain socket: `tncbridge` listens on the given path and
  waits for one client to connect.

## Requirements

- Linux, with `/dev/net/tun` available.
- Enough privileges to create and configure network interfaces. In practice
  this means root or `CAP_NET_ADMIN`.

## Installation

```
pip install .
```

## Usage

To attach the TNC on `/dev/ttyUSB0` as an ethernet device with an MTU of 512
bytes, assign an IPv4 address and keep IPv6 traffic away from the radio:

```
tncbridge /dev/ttyUSB0 115200 -m 512 -e --noipv6 --ipv4 10.0.0.1/24
```

Supported baud rates are 0, 50, 75, 110, 134, 150, 200, 300, 600, 1200, 2400,
4800, 9600, 19200, 38400, 57600, 115200 and 230400. The port is set to raw
8N1 with no flow control.

To connect to a TNC that offers KISS over TCP (no positional arguments may be
given then):

```
tncbridge --kisstcp --tcphost localhost --tcpport 8001
```

To accept a TNC on a Unix domain socket, give a first positional argument
followed by `unix:PATH`. The first argument is required but not used; any
existing file at `PATH` is removed before listening:

```
tncbridge tnc unix:/tmp/tnc.sock
```

The interface is named `tnc0`, `tnc1` and so on; the chosen name is printed
once setup is done. TAP devices also get their ARP reachable time set to 300
seconds and retransmit time to 5 seconds, and every interface gets a transmit
queue length of 10.

### Options

| Option | Meaning |
| --- | --- |
| `-m`, `--mtu MTU` | Interface MTU, from 74 to 1522. The default is 329. |
| `-e`, `--ethernet` | Create a full ethernet (TAP) device. Without it, a TUN device is created. |
| `-i`, `--ipv4 ADDR[/PREFIX]` | Configure an IPv4 address, with an optional netmask given as a prefix length from 0 to 32. |
| `-6`, `--ipv6 ADDR/PREFIX` | Configure an IPv6 address; the prefix length is required. This sets the MTU to 1280. |
| `-l`, `--ll` | Request link-local IPv6. This sets the MTU to 1280. |
| `-n`, `--noipv6` | Do not pass IPv6 traffic to the TNC. Cannot be combined with `--ipv6` or `--ll`. |
| `--noup` | Create the interface, but do not bring it up. Addresses are then not configured. |
| `-T`, `--kisstcp` | Use KISS over TCP instead of a serial port. |
| `-H`, `--tcphost HOST` | Host to connect to for KISS over TCP. |
| `-P`, `--tcpport PORT` | TCP port to connect to for KISS over TCP. |
| `-t`, `--interval SECONDS` | Maximum time between station identifications. |
| `-s`, `--id CALLSIGN` | Data to send as station identification; at most MTU bytes. |
| `-d`, `--daemon` | Detach from the terminal and log to syslog. Turns off `--verbose`. |
| `-v`, `--verbose` | Print a line for every frame that is passed on. |
| `--version` | Print the version and exit. |

Options are applied in the order given. `--ipv6` and `--ll` set the MTU to
1280; an `--mtu` below 1280 given after either of them is rejected.

With `--ll` alone no address is added by `tncbridge`; the kernel assigns the
link-local address when the interface comes up.

### Station identification

To meet identification rules such as Part 97, pass both `--id` and
`--interval`; giving only one of them is an error. Usually these are your
callsign and 600 seconds:

```
tncbridge /dev/ttyUSB0 9600 --id N0CALL --interval 600
```

The identification is sent as a KISS data frame. It is only sent when traffic
has gone out since the previous identification and the interval has run out;
the first frame sent triggers one straight away. When the program is stopped
with SIGINT (or, in daemon mode, SIGHUP or SIGCHLD), a final identification is
sent if traffic has gone out since the last one.

### Daemon mode

`--daemon` does not fork. The process starts a new session where it may,
points its standard streams at the null device, clears its umask, changes to
`/` and reports through syslog from then on. Put it in the background with
your shell or service manager.

## Library use

The KISS framing can also be used on its own:

```python
from tncbridge.kiss import KissDecoder, encode_frame

wire = encode_frame(b"\xc0hello\xdb")
decoder = KissDecoder()
frames = decoder.feed(wire)   # [b"\xc0hello\xdb"]
```

`KissDecoder` keeps state between calls, so data may be fed in any chunks.
Only data frames (command 0, any port) are returned; other commands are
ignored.

`tncbridge.bridge.Bridge` relays between an interface descriptor and a TNC
descriptor, and `tncbridge.options.parse_args` turns a command line into an
`Options` dataclass, raising `UsageError` when it is invalid.