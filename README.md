# blocftp

A minimal file transfer server and client that speak a small binary
protocol over TCP on port 2121. Files are sent in blocks of 2000 bytes,
and an interrupted download is picked up where it stopped the next time
the client starts.

## Installing

    pip install .

## Running the server

    blocftp-server

The command takes no arguments. It listens on port 2121 on every IPv4
interface and forks 10 worker processes that each accept connections
one after another. Files are looked up in a `fichier_serveur` directory
under the current working directory. Press Ctrl-C to stop it; the
workers are interrupted and waited for before the server exits.

## Running the client

    blocftp-client <host>

The client connects to `<host>` on port 2121 and shows a `> FTP `
prompt. Commands:

- `GET <file>` downloads `<file>` into `fichier_client/<file>` under the
  current working directory. The `fichier_client` directory must already
  exist. When done, the client prints the byte count, the elapsed time
  and the rate in Kbytes/s. If the server has no such file it prints
  `Erreur : Fichier non existant`.
- `bye` ends the session. End of input ends it as well.

`GET` without a file name, and any other command, print an error and the
prompt is shown again.

## Resuming downloads

During a download the client keeps a `cache.txt` file in the current
working directory holding the file name, the total size announced by the
server and the number of bytes received so far, updated after every
block. The file is removed when the download completes (or when the
server reports that the file does not exist). If `cache.txt` is present
when the client starts, it first asks the server for the rest of the
recorded file from the saved offset, writes it after the bytes already
on disk, and then removes `cache.txt`.

## Wire format

All integers are 32-bit little endian.

- GET request: type `0`, name length, name bytes.
- Resume request: type `2`, offset, name length, name bytes.
- BYE request: type `1`.
- Response: status (`0` on success, `-1` if the file cannot be opened),
  then the whole file size, then the file bytes from the requested
  offset in blocks of 2000 bytes.

The server closes the connection on a malformed request, including any
file name shorter than 4 bytes.

## Using it as a library

- `blocftp.netio`: `RioReader` (buffered `read` and `readline`),
  `read_exactly`, `write_all`, `open_clientfd`, `open_listenfd`, and
  `NetworkError`.
- `blocftp.protocol`: `parse_command`, `encode_get`, `encode_resume`,
  `encode_bye`, `encode_response`, `read_request`, `read_response`,
  `block_sizes`, the `Request`, `Response`, `ParsedCommand`,
  `RequestType` and `CommandKind` types, and `ProtocolError`.
- `blocftp.server`: `send_file`, `serve_connection`, `run_server`
  (which accepts a port, a root directory and a worker count), `main`.
- `blocftp.client`: `TransferCache`, `CacheEntry`, `receive_blocks`,
  `download`, `resume_transfer`, `main`.

## What it does not do

This is not a standard FTP implementation: it has no FTP command set,
no login, no directory listing and no uploads. The commands use fixed
directories, a fixed port and IPv4 only; the client does not create the
`fichier_client` directory.

## Tests

    pip install .[test]
    pytest