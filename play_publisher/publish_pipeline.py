from __future__ import annotations
"""
Play Bundle Publisher - Release Pipeline
Uploads one Android App Bundle to the internal track of a package and commits it.
"""

import argparse
import asyncio
import os
import sys
from datetime import datetime
from typing import List, Optional

import httpx

from play_publisher.auth.service_account import CredentialError, TokenManager, load_service_account
from play_publisher.models import AppEdit
from play_publisher.play_client import ApiError, PlayPublisherClient
from play_publisher.settings import settings


def log_step(message: str, level: str = "INFO"):
    """Structured logging for the release pipeline."""
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    prefix = {
        "INFO": "ℹ️ ",
        "SUCCESS": "✅",
        "ERROR": "❌",
        "WARNING": "⚠️ ",
        "PROGRESS": "⏳"
    }.get(level, "")
    print(f"[{timestamp}] [PUBLISH] {prefix} {message}")


async def run_release(
    client: PlayPublisherClient,
    bundle_path: str,
    version_code: str,
) -> AppEdit:
    """
    Execute create -> upload -> track -> commit, stopping at the first failure.

    Returns:
        The committed edit
    """
    edit_id = None
    try:
        log_step("STEP 1/4: Opening edit...", "PROGRESS")
        edit = await client.create_edit()
        edit_id = edit.id

        log_step(f"STEP 2/4: Uploading bundle to edit {edit_id}...", "PROGRESS")
        await client.upload_bundle(edit_id, bundle_path)

        log_step(f"STEP 3/4: Assigning versionCode {version_code} to internal track...", "PROGRESS")
        await client.update_track(edit_id, version_code)

        log_step(f"STEP 4/4: Committing edit {edit_id}...", "PROGRESS")
        committed = await client.commit_edit(edit_id)
    except Exception:
        if edit_id is not None:
            log_step(f"Edit {edit_id} was left open and uncommitted", "WARNING")
        raise

    log_step(f"Release committed (edit {committed.id})", "SUCCESS")
    return committed


async def publish_bundle(
    service_account_json: str,
    package_name: str,
    bundle_path: str,
    version_code: str,
) -> AppEdit:
    service_account = load_service_account(service_account_json)

    # Fail before opening an edit if the bundle is unreadable
    with open(bundle_path, "rb"):
        pass

    token_manager = TokenManager(service_account, [settings.ANDROID_PUBLISHER_SCOPE])
    try:
        async with PlayPublisherClient(package_name, token_manager) as client:
            return await run_release(client, bundle_path, version_code)
    finally:
        await token_manager.aclose()


def _parse_args(argv: List[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Upload an Android App Bundle to the internal track as a draft release."
    )
    parser.add_argument("-s", "--service-account-json", required=True,
                        help="Path to the Google service account JSON key")
    parser.add_argument("-p", "--package-name", required=True,
                        help="Application package name, e.g. com.example.app")
    parser.add_argument("-b", "--bundle", required=True,
                        help="Path to the .aab file to upload")
    parser.add_argument("-v", "--version-code", required=True,
                        help="Version code of the uploaded bundle")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(sys.argv[1:] if argv is None else argv)

    log_step(f"Publishing {os.path.basename(args.bundle)} for {args.package_name}")

    try:
        asyncio.run(publish_bundle(
            args.service_account_json,
            args.package_name,
            args.bundle,
            args.version_code,
        ))
    except ApiError as e:
        log_step(f"Publisher API error: {e}", "ERROR")
        if e.body:
            log_step(f"Response body: {e.body}", "ERROR")
        return 1
    except CredentialError as e:
        log_step(f"Authentication failed: {e}", "ERROR")
        if e.body:
            log_step(f"Response body: {e.body}", "ERROR")
        return 1
    except (OSError, ValueError, httpx.HTTPError) as e:
        log_step(f"Release aborted: {e}", "ERROR")
        return 1

    log_step("Publish finished SUCCESSFULLY.", "SUCCESS")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
