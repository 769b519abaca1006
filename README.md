# anymon

A library for working with file system change events on Linux. It covers
the kinds of change and the events that carry them, a buffer that merges
and batches events, the generic netlink message format they travel in, a
client that listens for them, and the data models a monitor shows them
with. These models cover block devices, mount points and a filterable event
table.

The package has no dependencies outside the standard library.

## Install

    pip install .

To run the tests:

    pip install .[test]
    pytest

## Modules

- `anymon.actions`
  - `Action` lists the fourteen kinds of change: new file, link, symlink and
    folder, delete file and folder, rename file and folder, rename from and
    rename to for files and folders, mount and unmount. Each has a short
    hyphenated `label()`.
  - `Event` is one change. It holds `action`, `path`, `cookie`, `dev` and the
    `pair` that links the two halves of a rename. Events compare by identity.
- `anymon.devices`
  - `makedev`, `major` and `minor` build device numbers and split them.
  - `UnnamedDevices` is the set of major-0 minors whose changes are still
    reported. `store("a5")` adds minor 5, `store("r5")` removes it and
    `store("e0")` clears the set. `show()` lists the set, comma separated,
    followed by a newline. `is_invalid(dev)` says whether changes on `dev`
    are ignored. A malformed command raises `ValueError`.
- `anymon.merge`
  - `EventMerger` holds events briefly and folds sequences that cancel out
    before it passes the rest to its `notify` callable. Examples:
    - a delete and a create of the same path cancel each other;
    - a created file that is then renamed becomes a creation at the new
      name;
    - chained renames collapse into a delete and a create.
  - Events leave the buffer when it fills (`buffer_size`, at most
    `dump_size` at a time) or when `timeout` seconds have passed. With
    `timeout=None` no timer thread is started and you call `on_timeout()`
    yourself.
  - `close()` flushes everything that is left. After it, `submit()` raises
    `RuntimeError`.
- `anymon.genl`
  - `encode_notify(event, family_id, seq)` builds a notification of the
    `vfsmonitor` generic netlink family, and `decode_notify(data)` parses one
    into a `NotifyMessage`.
  - `Attr` and `Command` give the attribute and command numbers.
  - Bad input raises `GenlError`.
- `anymon.client`
  - `MessageHandler.handle(message)` decodes one message and joins the
    rename-from and rename-to halves by cookie into a single rename
    `MonitorEvent`. It calls `on_event` for each event, and
    `on_partition_update` on mount and unmount.
  - `GenlClient` is a context manager. It resolves the family, joins the
    `vfsmonitor_de` multicast group, and `receive()` or `run()` feeds
    datagrams to its handler.
- `anymon.record`
  - `MonitorEvent` is one row of an event table. `column(index)` returns the
    device id, action, source, destination or time. `MonitorEvent.header_row()`
    gives the CSV header and `to_row()` the event as one CSV line.
- `anymon.mountinfo`
  - `parse_mountinfo(text)` maps `major:minor` to the mount point of each
    device's root.
  - `MountInfo` reads `/proc/self/mountinfo`, or another path you give it.
    It has `refresh()`, `load(text)` and `query(maj_min)`.
- `anymon.blockdevices`
  - `parse_lsblk(text)` reads the output of `lsblk -r`.
  - `BlockDevice` is one entry, linked to its disk and its partitions.
    `root_mount_point()` gives where the root of the device is mounted.
  - `BlockDeviceModel.load(output, is_update)` builds the tree of disks and
    partitions. The model tracks the selection through `check()`,
    `check_state()` and `checked()`, and looks devices up with
    `device_name("8:1")` and `mount_point(major, minor)`.
- `anymon.eventmodel`
  - `EventModel` records events while `running` is true and shows those that
    pass its filters: action (`set_filter`), search text (`search`) and
    selected devices.
  - `value(row, role)` reads a cell, with `Role` naming the columns. Source
    and destination paths are prefixed with their mount point.
  - `export_csv(path)` writes the shown rows and appends `.csv` to the file
    name if it is missing.

## Example

```python
from anymon.actions import Action, Event
from anymon.merge import EventMerger

sent = []
merger = EventMerger(sent.append, timeout=None)
merger.submit(Event(Action.NEW_FILE, path="/tmp/a", dev=0x801))
merger.submit(Event(Action.DEL_FILE, path="/tmp/a", dev=0x801))
merger.close()
assert sent == []  # the creation and the deletion cancelled out
```

## What it does not do

- It does not capture changes itself. Events reach `EventMerger` only
  through `submit()`, and `GenlClient` only hears notifications that
  something on the system already multicasts on the `vfsmonitor` family.
- It does not run `lsblk`. You pass its output to `BlockDeviceModel.load`.
- It has no command-line program and no graphical interface. The models
  are plain Python objects for a front end to build on.