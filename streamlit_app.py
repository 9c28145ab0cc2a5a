from __future__ import annotations

import asyncio
from pathlib import Path

import streamlit as st
from streamlit_folium import st_folium

from parcel_demarcate.errors import DemarcationValidationError
from parcel_demarcate.models import DEFAULT_TZ, DemarcationRecord
from parcel_demarcate.notify import CollectingNotifier, Level
from parcel_demarcate.positioning import ReplayPositionProvider
from parcel_demarcate.render import DEFAULT_CENTER, FoliumMapAdapter
from parcel_demarcate.session import CaptureSession, SessionConfig
from parcel_demarcate.store import JsonParcelStore
from parcel_demarcate.timeutils import format_local


_TOAST_ICONS = {
    Level.INFO: "ℹ️",
    Level.SUCCESS: "✅",
    Level.WARNING: "⚠️",
    Level.ERROR: "❌",
}


def _new_session(store_path: str, track_csv: str) -> tuple[CaptureSession, CollectingNotifier, tuple[float, float]]:
    notifier = CollectingNotifier()
    positioning = None
    center = DEFAULT_CENTER
    if track_csv and Path(track_csv).exists():
        positioning = ReplayPositionProvider.from_track_csv(track_csv)
        first = positioning.peek()
        if first is not None:
            center = (first.latitude, first.longitude)
    session = CaptureSession(
        positioning,
        notifier=notifier,
        store=JsonParcelStore(store_path),
        config=SessionConfig(require_producer=True),
    )
    session.on_saved(_request_form_reset)
    return session, notifier, center


def _request_form_reset(record: DemarcationRecord) -> None:
    # widget values can only be reset before the widgets are drawn, i.e. on the next run
    st.session_state["reset_form"] = True


def _show_notifications(notifier: CollectingNotifier) -> None:
    for n in notifier.drain():
        st.toast(n.message, icon=_TOAST_ICONS[n.level])


def main() -> None:
    st.set_page_config(page_title="Parcel demarcation", layout="wide")
    st.title("Demarcate parcel")

    if st.session_state.pop("reset_form", False):
        st.session_state["producer_id"] = ""
        st.session_state["parcel_name"] = ""

    with st.sidebar:
        st.subheader("Data")
        tz_name = st.text_input("Timezone (IANA)", value=DEFAULT_TZ)
        store_path = st.text_input("Demarcation store", value="parcels.json")
        track_csv = st.text_input(
            "Recorded track CSV (optional, used as device position)",
            value="",
            help="Without a device, 'Capture device position' replays fixes from this file.",
        )
        if st.button("New session", use_container_width=True):
            st.session_state.pop("session", None)

        st.subheader("Parcel")
        producer_id = st.text_input("Producer id", key="producer_id")
        parcel_name = st.text_input("Parcel name", key="parcel_name")

    if "session" not in st.session_state:
        st.session_state["session"] = _new_session(store_path, track_csv)
        st.session_state["last_click"] = None
    session, notifier, center = st.session_state["session"]

    adapter = FoliumMapAdapter(center=center)
    adapter.attach(session)
    try:
        _page(session, adapter, tz_name, producer_id, parcel_name)
    finally:
        # the adapter is rebuilt on every run; never leave it subscribed
        adapter.detach()
    _show_notifications(notifier)

    st.caption(
        "Area uses the shoelace formula scaled at the first vertex's latitude; "
        "at least 3 points are needed to define an area."
    )


def _page(
    session: CaptureSession,
    adapter: FoliumMapAdapter,
    tz_name: str,
    producer_id: str,
    parcel_name: str,
) -> None:
    left, right = st.columns([3, 2])
    with left:
        out = st_folium(adapter.map, use_container_width=True, height=560, key="demarcation_map")
        click = (out or {}).get("last_clicked")
        if click and click != st.session_state.get("last_click"):
            st.session_state["last_click"] = click
            asyncio.run(session.add_point(float(click["lat"]), float(click["lng"])))
            st.rerun()

    with right:
        metrics = session.measurement()
        c1, c2, c3 = st.columns(3)
        c1.metric("Points", str(metrics.points))
        c2.metric("Hectares", f"{metrics.area_ha:.2f}")
        c3.metric("Km", f"{metrics.perimeter_km:.2f}")

        with st.form("add_point", clear_on_submit=False):
            lat = st.number_input("Latitude", value=0.0, min_value=-90.0, max_value=90.0, format="%.7f")
            lng = st.number_input("Longitude", value=0.0, min_value=-180.0, max_value=180.0, format="%.7f")
            if st.form_submit_button("Add point", use_container_width=True):
                asyncio.run(session.add_point(float(lat), float(lng)))
                st.rerun()

        b1, b2, b3 = st.columns(3)
        if b1.button("Capture device position", use_container_width=True):
            asyncio.run(session.add_point())
            st.rerun()
        if b2.button("Undo", disabled=not session.points, use_container_width=True):
            session.remove_last_point()
            st.rerun()
        if b3.button("Clear all", disabled=not session.points, use_container_width=True):
            session.clear_all_points()
            st.rerun()

        if st.button("Save parcel", type="primary", disabled=len(session.points) < 3, use_container_width=True):
            try:
                asyncio.run(session.save_demarcation(producer_id=producer_id.strip() or None, name=parcel_name))
            except DemarcationValidationError:
                pass  # already shown as a notification
            else:
                st.rerun()

        if session.points:
            st.subheader("Captured points")
            st.dataframe(
                [
                    {
                        "point": i,
                        "latitude": p.latitude,
                        "longitude": p.longitude,
                        "accuracy_m": round(p.accuracy_m, 1),
                        "time": format_local(p.captured_at, tz_name),
                    }
                    for i, p in enumerate(session.points, start=1)
                ],
                use_container_width=True,
                height=240,
            )


if __name__ == "__main__":
    main()
