# shipyard

`shipyard` is a library for managing installs of game ports that are
published as GitHub releases. It can:

- fetch the releases of a repository;
- install a release so that a failure leaves nothing half-written;
- find installs already on disk and remove them;
- keep a managed library of ROM files;
- place the assigned ROMs inside an install before launch;
- detect and clear the ROM archives that a game generates;
- start the game and report whether it is still running.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

### `shipyard.github`

`Client(cache_path, api_base="https://api.github.com")` talks to the GitHub
releases API.

- `list_releases("owner/name")` returns `(releases, RateLimitStatus)`. The
  client saves the ETag of each answer to `cache_path` as JSON. Later requests
  send that ETag, including requests from a new `Client`. When the server
  answers `304 Not Modified`, the client returns the cached releases.
- A 403 or 429 answer raises `RateLimitedError`, which carries `reset_at`.
  Any other unsuccessful status raises `UnexpectedStatusError`, which carries
  `status` and `body`. Network and decoding failures raise `GithubError`,
  the base class of both.
- `download_asset(url, dest, progress=None)` streams the file into
  `<stem>.shipyard-partial` next to `dest` and renames it to `dest` when the
  download completes. After each chunk it calls
  `progress(DownloadProgress(downloaded, total))`.
- If the `GITHUB_TOKEN` environment variable is set, its value is sent as a
  bearer token.

`Release` and `ReleaseAsset` are frozen dataclasses with `from_json` and
`to_json`. `parse_rate_limit(headers)` reads the `x-ratelimit-*` headers.

### `shipyard.library`

- `manifest.InstallManifest` is the `.shipyard-install.json` file that marks
  a directory as a completed install. It provides `path_in`, `read` and
  `write`. `read` returns `None` when the file is absent and raises
  `ValueError` when the file cannot be parsed.
- `installs.install(client, InstallRequest(...), progress=None)` works in
  this order:
  1. It picks the asset through the game.
  2. It downloads the asset.
  3. It extracts the asset into `<dest>.partial/`.
  4. It writes the manifest.
  5. It renames the directory to `<library_root>/<game_slug>/<tag>`, or to
     `destination_override` if one is given.

  If extraction fails, the partial directory is removed. The callback
  receives `InstallProgress` reports with an `InstallStage` in this order:
  `STARTING`, `DOWNLOADING`, `EXTRACTING`, `FINALIZING`, `DONE`.
  `install` returns `(InstalledVersion, override_or_None)`. It raises
  `LookupError` when no asset fits and `FileExistsError` when the
  destination already exists.
- `installs.scan(library_root, install_overrides=None)` finds installs in the
  flat layout (`<root>/<tag>/`) and in the partitioned layout
  (`<root>/<slug>/<tag>/`). It also finds installs at the override paths and
  lists each install only once. `uninstall(installed)` removes an install
  directory. Calling it again does nothing.
- `extract.unzip` extracts a zip archive and keeps Unix permissions. It skips
  entries whose names would escape the destination. `install_flat_zip` also
  marks a named binary as executable. The module also has these macOS
  helpers: `find_first_with_ext`, `copy_dir_recursive` (`cp -R`), and
  `mount_dmg`. `mount_dmg` returns a `MountGuard` context manager that
  detaches the image on exit.

### `shipyard.roms`

- `library`:
  - `library_root(platform)` returns `<config_dir>/roms`.
  - `list_roms` returns the ROMs sorted by name and skips in-flight
    `.partial` files.
  - `import_rom` copies a file into the library. If the name is taken, it
    adds a numeric suffix: `oot.z64`, then `oot-1.z64`, then `oot-2.z64`.
  - `delete_rom` removes a ROM.
- `wiring.reconcile(install_dir, game, platform, assignments, library_root)`
  handles each `SlotSpec` the game declares:
  - **Assigned slot:** it puts a symlink to the ROM at
    `<install_dir>/<symlink_filename>`. If the game's `requires_rom_copy()`
    returns true, it puts a copy there instead.
  - **Unassigned slot:** it removes that file.

  `assignments` maps a game slug to a dictionary of
  `{slot_id: rom_filename}`.
- `cached_assets` works from the candidate filenames of each
  `CachedAssetSpec`, in order:
  - `scan_cached_assets` reports the first file that exists.
  - `plan_clear` lists what would be deleted.
  - `clear_cached_assets` deletes the files and returns a `ClearResult` with
    `deleted` and `failures`.

### `shipyard.launcher`

`launch(installed, game, platform, assignments, rom_library_root)` first runs
`reconcile`. It then starts the game's `launch_command` in the install
directory, in a new session on POSIX systems. It returns a `LaunchHandle`
with `tag`, `pid` and `is_running()`.

### `shipyard.paths` and `shipyard.platform`

`paths.expand_path` expands a leading `~`, and also `$VAR` and `${VAR}`.
Unknown variables are left as they are.

`platform.current()` returns `Linux` or `MacOs`, or raises `RuntimeError` on
any other system. Each platform object provides:

- `default_library_root()`
- `config_dir()`
- `cache_dir()`
- `asset_keyword()`, which is `"Linux"` or `"Mac"`.

The installers `install_appimage_release`, `install_flat_binary_release` and
`install_app_in_dmg_release` are in the same module. `install_app_in_dmg_release`
works on macOS only.

## Games

The package does not define any games. Functions that take a `game` accept
any object that has the methods they call:

- `slug()`
- `pick_asset(assets, platform)`
- `extract(archive, dest, platform)`
- `slots()`
- `launch_command(install_dir, platform)`
- `data_dir(install_dir, platform)`
- `cached_assets()`
- optionally `requires_rom_copy()`

## Example

```python
from shipyard import platform
from shipyard.github import Client

plat = platform.current()
client = Client(plat.cache_dir() / "etags.json")
releases, rate = client.list_releases("owner/repo")
for release in releases:
    print(release.tag_name, [a.name for a in release.assets])
print("requests remaining:", rate.remaining)
```

## What this package does not do

- It has no graphical interface and no command-line program. It is a library
  only.
- It does not store settings. Install overrides and ROM slot assignments are
  passed in as plain mappings, and the caller keeps them.
- It ships no registry of games.