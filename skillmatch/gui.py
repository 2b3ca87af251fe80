import streamlit as st

# MUST be the first Streamlit command
st.set_page_config(layout="wide", page_title="SkillMatch Pro")

import asyncio
import logging
import tempfile
from pathlib import Path

from skillmatch import config
from skillmatch.chat import APOLOGY, ChatTurn, Transcript
from skillmatch.errors import SkillMatchError
from skillmatch.ingest import Upload, ingest_files
from skillmatch.prompts import build_chat_message, build_chat_system_prompt
from skillmatch.record_store import RecordStore
from skillmatch.recommendations import analyze_cvs, load_catalog
from skillmatch.rules import DEFAULT_RULES, parse_rules
from skillmatch.schema_cv import SECTION_KEYS, SECTION_LABELS
from skillmatch.storage import LocalStore
from skillmatch.utils import configure_logging
from skillmatch.view_sync import EditorSession

configure_logging()
log = logging.getLogger("skillmatch.gui")

RULES_UPDATED = "I've updated my recommendation logic based on your new rules."


# --- Chat surface backed by Streamlit placeholders ---
class StreamlitBubble:
    def __init__(self, placeholder):
        self.placeholder = placeholder
        self.text = ""

    def append(self, token: str) -> None:
        self.text += token
        self.placeholder.markdown(self.text + "▌")

    def finalize(self, text: str) -> None:
        self.placeholder.markdown(text)

    def discard(self) -> None:
        self.placeholder.empty()


class StreamlitSurface:
    def __init__(self, container):
        self.container = container
        self.typing = None

    def show_typing(self) -> None:
        if self.typing is None:
            self.typing = self.container.empty()
        self.typing.markdown("_SkillMatch is typing…_")

    def hide_typing(self) -> None:
        if self.typing is not None:
            self.typing.empty()

    def open_stream(self) -> StreamlitBubble:
        self.hide_typing()
        return StreamlitBubble(self.container.chat_message("assistant").empty())

    def add_message(self, text: str, is_user: bool = False) -> None:
        self.container.chat_message("user" if is_user else "assistant").markdown(text)


# Initialize session state variables
if "local_store" not in st.session_state:
    st.session_state.local_store = LocalStore()
store: LocalStore = st.session_state.local_store

if "editor" not in st.session_state:
    st.session_state.editor = EditorSession(store.load_submitted())
if "transcript" not in st.session_state:
    # each page load starts a fresh conversation
    store.clear_chat_history()
    st.session_state.transcript = Transcript(store=store)
if "user_rules" not in st.session_state:
    st.session_state.user_rules = store.load_user_rules(DEFAULT_RULES)
if "last_recommendations" not in st.session_state:
    st.session_state.last_recommendations = store.load_last_recommendations()
if "catalog" not in st.session_state:
    st.session_state.catalog = load_catalog()
if "view_rev" not in st.session_state:
    st.session_state.view_rev = 0
if "upload_status" not in st.session_state:
    st.session_state.upload_status = None

editor: EditorSession = st.session_state.editor
transcript: Transcript = st.session_state.transcript


# --- Editor ↔ widget synchronisation ---
def _widget_key(section: str, row: int, field: str) -> str:
    return f"cv::{st.session_state.view_rev}::{editor.view.record_name}::{section}::{row}::{field}"


def pull_widgets_into_view():
    """Copy current widget values into the editor's view handle."""
    if not editor.is_open:
        return
    for section in SECTION_KEYS:
        for i, row in enumerate(editor.view.rows(section)):
            for inp in row.inputs:
                key = _widget_key(section, i, inp.key)
                if key in st.session_state:
                    inp.value = st.session_state[key]


def _bump_view():
    st.session_state.view_rev += 1


def on_tab_change():
    pull_widgets_into_view()
    editor.switch_to(st.session_state.cv_tab)
    _bump_view()


def on_add_row(section: str):
    pull_widgets_into_view()
    editor.view.add_row(section)
    _bump_view()


def on_delete_row(section: str, index: int):
    pull_widgets_into_view()
    editor.view.delete_row(section, index)
    _bump_view()


def on_submit():
    pull_widgets_into_view()
    submitted = editor.submit()
    store.save_submitted(submitted)
    editor.close()
    _bump_view()
    st.session_state.upload_status = ("success", f"Saved {len(submitted)} CV(s).")


def on_reopen(index: int):
    editor.reopen_submitted(index)
    _bump_view()


def on_delete_submitted(name: str):
    pull_widgets_into_view()
    remaining = editor.delete_submitted(name)
    store.save_submitted(remaining)
    _bump_view()


def render_editor():
    view = editor.view
    # the radio is driven through its session-state key only
    if st.session_state.get("cv_tab") != editor.active_index:
        st.session_state.cv_tab = editor.active_index
    st.radio(
        "CV",
        options=list(range(len(editor.order))),
        format_func=lambda i: editor.order[i],
        key="cv_tab",
        horizontal=True,
        on_change=on_tab_change,
    )
    for section in SECTION_KEYS:
        st.markdown(f"#### {SECTION_LABELS[section]}")
        for i, row in enumerate(view.rows(section)):
            cols = st.columns([12, 1])
            with cols[0]:
                if section == "skills":
                    inp = row.inputs[0]
                    st.text_input(inp.placeholder, value=inp.value,
                                  key=_widget_key(section, i, inp.key),
                                  label_visibility="collapsed", placeholder=inp.placeholder)
                else:
                    field_cols = st.columns(len(row.inputs))
                    for col, inp in zip(field_cols, row.inputs):
                        widget = col.text_area if inp.multiline else col.text_input
                        widget(inp.placeholder, value=inp.value,
                               key=_widget_key(section, i, inp.key),
                               placeholder=inp.placeholder)
            cols[1].button("×", key=f"del::{st.session_state.view_rev}::{section}::{i}",
                           on_click=on_delete_row, args=(section, i))
        st.button(f"+ Add {SECTION_LABELS[section]}",
                  key=f"add::{st.session_state.view_rev}::{section}",
                  on_click=on_add_row, args=(section,))

    label = "Submit all CVs" if len(editor.order) > 1 else "Submit CV"
    st.button(label, type="primary", on_click=on_submit)


# --- Page ---
st.title("🎓 SkillMatch Pro")
st.markdown("Upload CVs, review the extracted career data and chat about certifications")

col_cv, col_chat = st.columns([3, 2])

with col_cv:
    st.markdown("### 📄 CV Upload")
    files = st.file_uploader("Upload CV files", type=["pdf", "txt"], accept_multiple_files=True)
    if files:
        st.caption(f"Selected {len(files)} file(s): {', '.join(f.name for f in files)}")

    if st.button("🔍 Analyze CVs", disabled=not files):
        uploads = []
        for f in files:
            with tempfile.NamedTemporaryFile(delete=False, suffix=Path(f.name).suffix) as tmp_file:
                tmp_file.write(f.read())
                uploads.append(Upload(name=f.name, path=Path(tmp_file.name)))

        drafts = RecordStore()
        try:
            with st.spinner("Extracting text from CVs..."):
                result = asyncio.run(ingest_files(uploads, drafts))
        finally:
            for u in uploads:
                u.path.unlink(missing_ok=True)

        if drafts.names():
            editor.open(drafts.records())
            _bump_view()
        if result.ok:
            st.session_state.upload_status = (
                "success", f"Loaded {len(result.loaded)} CV(s). Review and submit to save them.")
        else:
            name, reason = result.failed
            st.session_state.upload_status = ("error", f"Failed to analyze {name}. Error: {reason}")

    if st.session_state.upload_status:
        kind, message = st.session_state.upload_status
        (st.success if kind == "success" else st.error)(message)

    if editor.is_open:
        with st.container(border=True):
            st.markdown("### ✏️ Review CVs")
            render_editor()

    if editor.submitted:
        st.markdown("### ✅ Submitted CVs")
        for idx, record in enumerate(editor.submitted):
            c1, c2 = st.columns([5, 1])
            c1.button(record.name or f"CV {idx + 1}", key=f"chip::{idx}",
                      on_click=on_reopen, args=(idx,))
            c2.button("🗑️", key=f"chipdel::{idx}",
                      on_click=on_delete_submitted, args=(record.name,))

    st.markdown("### 📏 Recommendation Rules")
    rules_text = st.text_area("Rules", value="\n".join(st.session_state.user_rules), height=120)
    if st.button("Update rules"):
        if not rules_text.strip():
            st.error("Please enter some rules before updating.")
        else:
            with st.spinner("Parsing rules with AI..."):
                try:
                    st.session_state.user_rules = asyncio.run(parse_rules(rules_text))
                    store.save_user_rules(st.session_state.user_rules)
                    transcript.add(RULES_UPDATED, False)
                    st.success(f"Successfully parsed and applied {len(st.session_state.user_rules)} rules.")
                except (SkillMatchError, ValueError) as e:
                    log.error("Rule parsing failed: %s", e)
                    st.error(f"Failed to parse rules. Error: {e}")

    st.markdown("### 🏅 Recommendations")
    if st.button("Generate recommendations", disabled=not editor.submitted):
        with st.spinner("Generating recommendations..."):
            try:
                recs = asyncio.run(analyze_cvs(editor.submitted, st.session_state.user_rules,
                                               st.session_state.catalog))
                st.session_state.last_recommendations = recs
                store.save_last_recommendations(recs)
            except SkillMatchError as e:
                log.error("Recommendation generation failed: %s", e)
                st.error(f"Failed to generate recommendations. Error: {e}")
    for cand in st.session_state.last_recommendations or []:
        with st.expander(cand.get("candidateName") or "Candidate", expanded=True):
            for rec in cand.get("recommendations", []):
                st.markdown(f"**{rec['certName']}**: {rec['reason']}")
                if rec.get("rulesApplied"):
                    st.caption("Rules applied: " + "; ".join(rec["rulesApplied"]))

with col_chat:
    st.markdown("### 💬 Chat")
    chat_box = st.container(height=600)
    for msg in transcript.messages:
        chat_box.chat_message("user" if msg["isUser"] else "assistant").markdown(msg["text"])

    if message := st.chat_input("Ask about certifications, skills or your CV"):
        message = message.strip()
        if message:
            records = editor.submitted
            system_prompt = build_chat_system_prompt(records, st.session_state.catalog)
            prompt = build_chat_message(message, records, st.session_state.user_rules,
                                        st.session_state.last_recommendations)
            turn = ChatTurn(StreamlitSurface(chat_box), transcript)
            reply = asyncio.run(turn.run(message, prompt, system_prompt))
            if reply == APOLOGY:
                log.warning("Chat turn ended with the apology message (provider=%s)", config.LLM_PROVIDER)
