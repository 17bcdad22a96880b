import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import asyncio
from dataclasses import asdict
from functools import partial

import streamlit as st
import pandas as pd
import numpy as np
import plotly.graph_objects as go
import plotly.express as px

from apbd.config import Settings
from apbd.csv_io import load_seed
from apbd.domain import KATEGORI, TAHUN_MAX, TAHUN_MIN, Route, SearchFilters
from apbd.errors import RenderError
from apbd.events import MESSAGES, Notifier
from apbd.formatting import chart_colors, format_full, format_short
from apbd.gateway import DataGateway
from apbd.logs import configure_logging, get_logger
from apbd.services import ChartRegistry, Renderer, ViewController
from apbd.store import MemoryStore, SupabaseStore
from apbd.validation import normalize, validate, validate_field

SEED_PATH = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "data", "seed.csv")

st.set_page_config(page_title="APBD Kabupaten Blora", layout="wide")

settings = Settings.from_env()
configure_logging(settings.log_level)
log = get_logger("page")

ROUTE_LABELS = {
    Route.HOME: "🏠 Beranda",
    Route.PENDAPATAN: "💰 Pendapatan",
    Route.PEMBELANJAAN: "🧾 Pembelanjaan",
    Route.PEMBIAYAAN: "🏦 Pembiayaan",
    Route.ADMIN: "🛠 Admin",
}


def value_axis(values):
    """Tick positions and short rupiah labels for a bar chart value axis."""
    top = float(np.max(values)) if len(values) else 0.0
    if top <= 0:
        return [0], [format_short(0)]
    ticks = np.linspace(0, top, 6)
    return ticks.tolist(), [format_short(v) for v in ticks]


class StreamlitRenderer(Renderer):
    """Draws into Streamlit containers.

    ``slots`` maps render keys (or their prefix before the last ``-``) to
    containers; without slots everything goes to the main page.
    """

    def __init__(self, slots=None):
        self.slots = slots

    def _slot(self, key: str):
        if self.slots is None:
            return st
        for k in (key, key.rsplit("-", 1)[0]):
            if k in self.slots:
                return self.slots[k]
        raise RenderError(key)

    def bar_chart(self, key, title, series, color=None):
        df_bar = pd.DataFrame({"label": [str(l) for l in series["labels"]], "value": series["values"]})
        fig = px.bar(df_bar, x="label", y="value", title=title, template="plotly_white")
        fig.update_traces(
            marker_color=color or chart_colors(len(df_bar)),
            customdata=[format_full(v) for v in df_bar["value"]],
            hovertemplate="%{x}<br>%{customdata}<extra></extra>",
        )
        tickvals, ticktext = value_axis(df_bar["value"].to_numpy())
        fig.update_layout(xaxis_title=None, yaxis_title=None, showlegend=False,
                          yaxis=dict(tickvals=tickvals, ticktext=ticktext),
                          margin=dict(t=40, b=10, l=10, r=10))
        placeholder = self._slot(key).empty()
        placeholder.plotly_chart(fig, use_container_width=True, key=key)
        return placeholder

    def grouped_bar_chart(self, key, title, series):
        labels = [str(l) for l in series["labels"]]
        colors = chart_colors(len(series["datasets"]))
        fig = go.Figure()
        all_values = []
        for color, ds in zip(colors, series["datasets"]):
            all_values.extend(ds["values"])
            fig.add_trace(go.Bar(
                x=labels, y=ds["values"], name=str(ds["label"]), marker_color=color,
                customdata=[format_full(v) for v in ds["values"]],
                hovertemplate="%{fullData.name}: %{customdata}<extra></extra>",
            ))
        tickvals, ticktext = value_axis(np.array(all_values))
        fig.update_layout(title=title, barmode="group", template="plotly_white",
                          yaxis=dict(tickvals=tickvals, ticktext=ticktext),
                          legend=dict(orientation="h"), margin=dict(t=40, b=10, l=10, r=10))
        placeholder = self._slot(key).empty()
        placeholder.plotly_chart(fig, use_container_width=True, key=key)
        return placeholder

    def table(self, key, records, max_rows, show_actions=False):
        target = self._slot(key).container()
        shown = records[:max_rows]
        df = pd.DataFrame({
            "No": range(1, len(shown) + 1),
            "Tahun": [r.tahun for r in shown],
            "Kategori": [r.kategori for r in shown],
            "Subkategori": [r.subkategori for r in shown],
            "Keterangan": [r.keterangan for r in shown],
            "Nilai": [format_full(r.nilai) for r in shown],
        })
        if show_actions:
            df.insert(1, "ID", [r.id for r in shown])
        target.dataframe(df, use_container_width=True, hide_index=True)
        if len(records) > max_rows:
            target.caption(f"Menampilkan {max_rows} dari {len(records)} data")

    def summary(self, key, cards):
        target = self._slot(key).container()
        cols = target.columns(len(cards))
        for col, (label, value) in zip(cols, cards.items()):
            col.metric(label.capitalize() if label.islower() else label, value)


def show_notification(note):
    getattr(st, note.level)(note.message)


def build_store():
    if settings.has_backend:
        return SupabaseStore(settings.supabase_url, settings.supabase_key, settings.table)
    # offline demo: keep the in-memory table across reruns
    if "memory_store" not in st.session_state:
        seed = [normalize(r) for r in load_seed(SEED_PATH) if validate(r).is_valid]
        st.session_state.memory_store = MemoryStore(seed)
    return st.session_state.memory_store


if "notifier" not in st.session_state:
    st.session_state.notifier = Notifier()
notifier = st.session_state.notifier
notifier.subscribe(show_notification)

# placeholders belong to a single script run, so the registry does too
charts = ChartRegistry()

loop = asyncio.new_event_loop()


def run(coro):
    return loop.run_until_complete(coro)


def make_controller(slots=None):
    gateway = DataGateway(build_store(), chunk_size=settings.import_chunk)
    return ViewController(gateway, StreamlitRenderer(slots), notifier,
                          charts=charts, max_rows=settings.max_rows)


def export_block(controller, route, full=False):
    state_key = f"export_{route.value}_{'full' if full else 'page'}"
    label = "📦 Siapkan CSV lengkap (dengan ID)" if full else "📄 Siapkan CSV"
    if st.button(label, key=f"btn_{state_key}"):
        action = controller.export_full if full else partial(controller.export_csv, route)
        st.session_state[state_key] = run(controller.guard(action))
    prepared = st.session_state.get(state_key)
    if prepared:
        filename, content = prepared
        st.download_button("⬇ Download CSV", content, file_name=filename, mime="text/csv", key=f"dl_{state_key}")


def home_page():
    st.title("📊 APBD Kabupaten Blora")
    st.caption("Ringkasan Anggaran Pendapatan dan Belanja Daerah")
    controller = make_controller()
    run(controller.initialize(Route.HOME))
    st.divider()
    export_block(controller, Route.HOME)


def category_page(route):
    st.title(f"{ROUTE_LABELS[route]} Daerah")
    summary = st.container()
    tab_chart, tab_sub, tab_table = st.tabs(["📈 Grafik", "🗂 Per Subkategori", "📋 Tabel"])
    slots = {
        "category-summary": summary,
        "category-chart": tab_chart,
        "comparison-chart": tab_chart,
        "subchart": tab_sub,
        "data-table": tab_table,
    }
    controller = make_controller(slots)
    run(controller.initialize(route))
    st.divider()
    export_block(controller, route)


def record_form(key, defaults=None):
    defaults = defaults or {}
    with st.form(key, clear_on_submit=not defaults):
        col1, col2 = st.columns(2)
        with col1:
            tahun = st.number_input("Tahun", min_value=TAHUN_MIN, max_value=TAHUN_MAX, step=1,
                                    value=min(max(int(defaults.get("tahun", TAHUN_MAX)), TAHUN_MIN), TAHUN_MAX))
            kategori = st.selectbox("Kategori", KATEGORI,
                                    index=KATEGORI.index(defaults["kategori"]) if defaults.get("kategori") in KATEGORI else 0)
            subkategori = st.text_input("Subkategori", value=defaults.get("subkategori", ""))
        with col2:
            nilai = st.number_input("Nilai (Rp)", min_value=0.0, step=1000000.0, format="%.0f",
                                    value=float(defaults.get("nilai", 0.0)))
            keterangan = st.text_area("Keterangan", value=defaults.get("keterangan", ""))
        submitted = st.form_submit_button("Simpan")
    candidate = {"tahun": tahun, "kategori": kategori, "subkategori": subkategori,
                 "keterangan": keterangan, "nilai": nilai}
    if submitted:
        for field in ("subkategori", "keterangan"):
            hint = validate_field(field, candidate[field])
            if hint:
                st.caption(f"⚠️ {hint}")
    return submitted, candidate


def admin_page():
    st.title("🛠 Kelola Data APBD")
    stats = st.empty()
    tab_data, tab_add, tab_edit, tab_search, tab_import = st.tabs(
        ["📋 Data", "➕ Tambah", "✏️ Ubah / Hapus", "🔎 Cari", "📥 Impor / Ekspor"]
    )
    slots = {"admin-stats": stats, "admin-table": tab_data.empty(), "search-table": tab_search.empty()}
    controller = make_controller(slots)

    with tab_add:
        submitted, candidate = record_form("form_add")
        if submitted:
            run(controller.guard(controller.submit, candidate))

    with tab_edit:
        records = run(controller.guard(controller.load_records))
        if records:
            by_id = {r.id: r for r in records}
            record_id = st.selectbox(
                "Pilih data", list(by_id),
                format_func=lambda i: f"#{i} · {by_id[i].tahun} · {by_id[i].subkategori} · {by_id[i].keterangan}",
            )
            submitted, candidate = record_form(f"form_edit_{record_id}", asdict(by_id[record_id]))
            if submitted:
                run(controller.guard(controller.edit, record_id, candidate))

            st.subheader("Hapus data")
            to_delete = st.multiselect("Data yang akan dihapus", list(by_id),
                                       format_func=lambda i: f"#{i} · {by_id[i].keterangan}")
            confirm = st.checkbox("Saya yakin ingin menghapus data ini")
            if st.button("🗑 Hapus", disabled=not (to_delete and confirm)):
                if len(to_delete) == 1:
                    run(controller.guard(controller.remove, to_delete[0]))
                else:
                    run(controller.guard(controller.remove_many, to_delete))
        elif records is not None:
            st.info("Belum ada data.")

    with tab_search:
        with st.form("form_search"):
            c1, c2, c3 = st.columns(3)
            with c1:
                kategori = st.selectbox("Kategori", ("",) + KATEGORI)
                tahun = st.selectbox("Tahun", [None] + list(range(TAHUN_MIN, TAHUN_MAX + 1)))
            with c2:
                sub = st.text_input("Subkategori mengandung")
                ket = st.text_input("Keterangan mengandung")
            with c3:
                min_nilai = st.number_input("Nilai minimum", min_value=0.0, value=0.0, format="%.0f")
                max_nilai = st.number_input("Nilai maksimum (0 = tanpa batas)", min_value=0.0, value=0.0, format="%.0f")
            searched = st.form_submit_button("Cari")
        if searched:
            filters = SearchFilters(
                kategori=kategori or None,
                tahun=tahun,
                subkategori_contains=sub or None,
                keterangan_contains=ket or None,
                min_nilai=min_nilai or None,
                max_nilai=max_nilai or None,
            )
            run(controller.guard(controller.run_search, filters))

    with tab_import:
        st.caption("Format: No/ID, Tahun, Kategori, Subkategori, Keterangan, Nilai. Baris pertama dianggap header.")
        uploaded = st.file_uploader("Unggah CSV", type=["csv"])
        if uploaded is not None and st.button("📥 Impor"):
            run(controller.guard(controller.import_csv, uploaded.getvalue().decode("utf-8-sig")))
        st.divider()
        export_block(controller, Route.ADMIN)
        export_block(controller, Route.ADMIN, full=True)

    run(controller.initialize(Route.ADMIN))


PAGES = {
    Route.HOME: home_page,
    Route.PENDAPATAN: lambda: category_page(Route.PENDAPATAN),
    Route.PEMBELANJAAN: lambda: category_page(Route.PEMBELANJAAN),
    Route.PEMBIAYAAN: lambda: category_page(Route.PEMBIAYAAN),
    Route.ADMIN: admin_page,
}

st.sidebar.markdown("### APBD Blora")
route = st.sidebar.radio(
    "Menu",
    list(ROUTE_LABELS),
    index=list(ROUTE_LABELS).index(Route.parse(st.query_params.get("page"))),
    format_func=ROUTE_LABELS.get,
)
st.query_params["page"] = route.value

if settings.has_backend:
    st.sidebar.caption("Sumber data: Supabase")
    if "connection_checked" not in st.session_state:
        ok = run(DataGateway(build_store()).test_connection())
        st.session_state.connection_checked = ok.is_right()
        if ok.is_left():
            notifier.error(MESSAGES["connection_failed"])
else:
    st.sidebar.caption("Sumber data: contoh lokal (APBD_SUPABASE_URL belum diatur)")

try:
    PAGES[route]()
except Exception:
    log.exception("Page %s failed", route.value)
    st.error(MESSAGES["system_error"])
finally:
    notifier.unsubscribe(show_notification)
    loop.close()
