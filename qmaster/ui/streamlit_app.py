from __future__ import annotations

import os
from typing import Any, Callable, Mapping

import streamlit as st

from qmaster.ui.api import APIError, QMasterAPIClient
from qmaster.ui.utils import format_ticket_number, format_time, pass_headline

DEFAULT_BASE_URL = os.getenv("QMASTER_API_BASE_URL", "http://localhost:8000")
MEMBER_PASS_CODE = "MEM_USER_DEFAULT"
SCREEN_TAP = "SCREEN_TAP"
VOICE_OPTIONS = ["MAN", "WOMAN"]
REPORT_RANGES = ["WEEK", "MONTH", "YEAR"]


def _get_base_url() -> str:
    base_url = st.session_state.get("base_url")
    if not base_url:
        base_url = DEFAULT_BASE_URL
        st.session_state["base_url"] = base_url
    return str(base_url)


def _build_client() -> QMasterAPIClient:
    return QMasterAPIClient(base_url=_get_base_url(), token=st.session_state.get("token"))


def _current_user() -> Mapping[str, Any] | None:
    user = st.session_state.get("user")
    return user if isinstance(user, Mapping) else None


def _handle_api_call(
    callback: Callable[[], object], success_message: str | None = None
) -> tuple[bool, object | None]:
    try:
        result = callback()
    except APIError as exc:
        st.error(str(exc))
        return False, None
    else:
        if success_message:
            st.success(success_message)
        return True, result


def _render_sidebar(client: QMasterAPIClient) -> None:
    st.sidebar.header("Connection")
    base_url = st.sidebar.text_input("API Base URL", value=_get_base_url(), key="base_url")
    st.session_state["base_url"] = base_url

    st.sidebar.header("Console login")
    user = _current_user()
    if user is None:
        with st.sidebar.form("login_form"):
            username = st.text_input("Username")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Log in")
        if submitted:
            success, result = _handle_api_call(lambda: client.login(username=username, password=password))
            if success and isinstance(result, Mapping):
                st.session_state["token"] = result["token"]
                st.session_state["user"] = result["user"]
                st.rerun()
        return

    st.sidebar.markdown(f"**Signed in:** {user.get('username')} ({user.get('role')})")
    voice = user.get("voice_preference") or VOICE_OPTIONS[0]
    new_voice = st.sidebar.selectbox("Announcement voice", VOICE_OPTIONS, index=VOICE_OPTIONS.index(voice))
    if new_voice != voice:
        success, updated = _handle_api_call(lambda: client.update_voice(user["id"], new_voice), "Voice updated")
        if success and isinstance(updated, Mapping):
            st.session_state["user"] = updated
    if st.sidebar.button("Log out"):
        _handle_api_call(client.logout)
        st.session_state.pop("token", None)
        st.session_state.pop("user", None)
        st.rerun()


def _render_kiosk_tab(client: QMasterAPIClient) -> None:
    st.subheader("Check-in kiosk")
    st.write("Scan your digital member pass or tap the screen to join the queue.")

    tap_col, scan_col = st.columns(2)
    receipt: object | None = None
    if tap_col.button("Tap to take a ticket"):
        _, receipt = _handle_api_call(lambda: client.check_in(SCREEN_TAP))
    scanned = scan_col.text_input("Scanned code", placeholder=MEMBER_PASS_CODE)
    if scan_col.button("Check in with pass"):
        if not scanned.strip():
            scan_col.warning("Scan a pass first")
        else:
            _, receipt = _handle_api_call(lambda: client.check_in(scanned))

    if isinstance(receipt, Mapping):
        ticket = receipt["ticket"]
        if receipt.get("linked"):
            st.session_state["my_ticket_id"] = ticket["id"]
        st.markdown(f"## Your number: {format_ticket_number(ticket['number'])}")
        st.code(ticket["id"], language="text")
        st.caption(f"{receipt.get('waiting_count', 0)} waiting")


def _render_pass_tab(client: QMasterAPIClient) -> None:
    st.subheader("My digital pass")
    ticket_id = st.session_state.get("my_ticket_id")
    if not ticket_id:
        st.write("Show this member code at the kiosk, or join the queue remotely.")
        st.code(MEMBER_PASS_CODE, language="text")
        if st.button("Join queue remotely"):
            success, view = _handle_api_call(client.join_queue)
            if success and isinstance(view, Mapping):
                st.session_state["my_ticket_id"] = view["ticket"]["id"]
                st.rerun()
        return

    success, view = _handle_api_call(lambda: client.get_pass(ticket_id))
    if not success or not isinstance(view, Mapping):
        st.session_state.pop("my_ticket_id", None)
        return

    ticket = view["ticket"]
    st.markdown(f"## {format_ticket_number(ticket['number'])}")
    st.markdown(f"### {pass_headline(view)}")
    if ticket["status"] == "WAITING":
        st.metric("Position", view.get("position", 0))
        st.code(ticket["id"], language="text")

    if view.get("is_finished"):
        if st.button("Get a new ticket"):
            st.session_state.pop("my_ticket_id", None)
            st.rerun()
    elif st.button("Cancel my ticket"):
        success, _ = _handle_api_call(lambda: client.abandon_pass(ticket_id), "Ticket cancelled")
        if success:
            st.session_state.pop("my_ticket_id", None)


def _render_display_tab(client: QMasterAPIClient) -> None:
    st.subheader("Now serving")
    success, board = _handle_api_call(client.display_board)
    if not success or not isinstance(board, Mapping):
        return

    calling = board.get("calling", [])
    if calling:
        cols = st.columns(min(len(calling), 4))
        for index, entry in enumerate(calling):
            cols[index % len(cols)].metric(
                entry.get("counter_name") or "Counter", format_ticket_number(entry["ticket"]["number"])
            )
    else:
        st.caption("Nobody is being called right now")

    stat_cols = st.columns(2)
    stat_cols[0].metric("Waiting", board.get("waiting_count", 0))
    stat_cols[1].metric("Served", board.get("served_count", 0))

    st.markdown("#### Recently served")
    for entry in board.get("recently_served", []):
        ticket = entry["ticket"]
        st.write(f"{format_ticket_number(ticket['number'])} at {entry.get('counter_name') or '-'} ({format_time(ticket.get('served_at'))})")


def _render_counter(client: QMasterAPIClient, counter: Mapping[str, Any]) -> None:
    counter_id = counter["id"]
    state = "open" if counter.get("is_active") else "closed"
    st.markdown(f"### {counter['name']} ({state})")

    action_cols = st.columns(4)
    if action_cols[0].button("Call next", key=f"next-{counter_id}"):
        success, announcement = _handle_api_call(lambda: client.call_next(counter_id))
        if success and announcement is None:
            st.info("Nobody is waiting")
        elif isinstance(announcement, Mapping):
            st.success(announcement["text"])
    if action_cols[1].button("Recall", key=f"recall-{counter_id}"):
        success, announcement = _handle_api_call(lambda: client.recall(counter_id))
        if success and isinstance(announcement, Mapping):
            st.success(announcement["text"])
    if action_cols[2].button("Play announcement", key=f"audio-{counter_id}"):
        success, audio = _handle_api_call(lambda: client.announcement_audio(counter_id))
        if success and isinstance(audio, bytes):
            st.audio(audio, format="audio/wav")
    if action_cols[3].button("Open/close", key=f"toggle-{counter_id}"):
        _handle_api_call(lambda: client.toggle_counter(counter_id))

    current = counter.get("current_ticket_id")
    if current:
        done_col, cancel_col = st.columns(2)
        if done_col.button("Mark served", key=f"served-{counter_id}"):
            _handle_api_call(lambda: client.change_ticket_status(current, status="SERVED"), "Served")
        if cancel_col.button("No show", key=f"cancel-{counter_id}"):
            _handle_api_call(lambda: client.change_ticket_status(current, status="CANCELLED"), "Cancelled")

    with st.form(f"scan-{counter_id}"):
        code = st.text_input("Scan customer ticket")
        if st.form_submit_button("Call scanned ticket"):
            success, announcement = _handle_api_call(lambda: client.scan(counter_id, code))
            if success and isinstance(announcement, Mapping):
                st.success(announcement["text"])


def _render_console_tab(client: QMasterAPIClient) -> None:
    st.subheader("Counter console")
    user = _current_user()
    if user is None:
        st.info("Log in from the sidebar to operate a counter")
        return

    success, counters = _handle_api_call(client.list_counters)
    if success and isinstance(counters, list):
        for counter in counters:
            _render_counter(client, counter)

    st.markdown("#### Waiting")
    success, waiting = _handle_api_call(client.waiting_tickets)
    if success and waiting:
        st.table([{"number": t["number"], "id": t["id"], "since": format_time(t["created_at"])} for t in waiting])
    elif success:
        st.caption("The queue is empty")


def _render_admin_tab(client: QMasterAPIClient) -> None:
    st.subheader("Administration")

    st.markdown("#### Staff")
    success, staff = _handle_api_call(client.list_staff)
    if success and isinstance(staff, list):
        for member in staff:
            cols = st.columns([3, 2, 1])
            cols[0].write(f"{member['username']} ({member['role']})")
            cols[1].write(member.get("assigned_counter_id") or "-")
            if member["role"] != "FULL_ADMIN" and cols[2].button("Delete", key=f"del-{member['id']}"):
                _handle_api_call(lambda: client.delete_staff(member["id"]), "Staff removed")

    _, available = _handle_api_call(client.available_counters)
    options = {counter["name"]: counter["id"] for counter in available or []}
    with st.form("staff_form"):
        username = st.text_input("Username")
        password = st.text_input("Password", type="password")
        counter_name = st.selectbox("Counter", list(options))
        voice = st.selectbox("Voice", VOICE_OPTIONS)
        if st.form_submit_button("Register staff"):
            _handle_api_call(
                lambda: client.register_staff(
                    username=username,
                    password=password,
                    assigned_counter_id=options.get(counter_name, ""),
                    voice_preference=voice,
                ),
                "Staff registered",
            )

    st.markdown("#### Counters")
    with st.form("counter_form"):
        name = st.text_input("Counter name")
        if st.form_submit_button("Add counter"):
            _handle_api_call(lambda: client.add_counter(name), "Counter added")

    st.markdown("#### Reports")
    report_range = st.selectbox("Range", REPORT_RANGES)
    success, summary = _handle_api_call(lambda: client.report_summary(report_range))
    if success and isinstance(summary, Mapping):
        cols = st.columns(3)
        cols[0].metric("Tickets", summary.get("total", 0))
        cols[1].metric("Avg wait (min)", summary.get("average_wait_minutes") or "-")
        cols[2].metric("Peak hour", summary.get("peak_hour") if summary.get("peak_hour") is not None else "-")
    if st.button("Generate AI insights"):
        success, insights = _handle_api_call(lambda: client.report_insights(report_range))
        if success and isinstance(insights, Mapping):
            st.markdown(insights["report"])

    st.markdown("#### System")
    if st.button("Reset to factory defaults"):
        success, _ = _handle_api_call(client.reset, "System reset")
        if success:
            st.session_state.pop("token", None)
            st.session_state.pop("user", None)


def main() -> None:
    st.set_page_config(page_title="Q-Master", layout="wide")
    client = _build_client()
    _render_sidebar(client)

    tabs: list[tuple[str, Callable[[QMasterAPIClient], None]]] = [
        ("Kiosk", _render_kiosk_tab),
        ("Display", _render_display_tab),
        ("My Pass", _render_pass_tab),
        ("Console", _render_console_tab),
    ]
    user = _current_user()
    if user is not None and user.get("role") == "FULL_ADMIN":
        tabs.append(("Admin", _render_admin_tab))

    tab_objects = st.tabs([label for label, _ in tabs])
    for tab_object, (_, renderer) in zip(tab_objects, tabs):
        with tab_object:
            renderer(client)


if __name__ == "__main__":
    main()
