"""
Streamlit Frontend for Finanzas Pro

The screens a user works with daily: dashboard, income and expense
lists, debts, savings goals, calendar, period reports and the AI advisor.

DESIGN PRINCIPLES:
1. Every change shows up immediately (optimistic updates)
2. A change the store did not accept is flagged, never hidden
3. Clear error messages in simple language
4. Amounts always formatted the same way

All figures come from finanzas.reports; this module only renders them.
"""

import asyncio
from datetime import date
from decimal import Decimal
from typing import Optional

import altair as alt
import pandas as pd
import streamlit as st

from finanzas.agents import AdvisoryError
from finanzas.config import get_settings
from finanzas.models.finance import (
    Debt,
    MutationResult,
    MutationStatus,
    SavingsGoal,
    Theme,
    Timeframe,
    Transaction,
    TransactionType,
)
from finanzas.orchestrator import AppComponents, AuthError, AuthFlow, create_app_components
from finanzas.reports import (
    active_debt_count,
    compute_balance_series,
    compute_calendar_buckets,
    compute_category_totals,
    compute_income_vs_expense,
    compute_required_savings,
    first_weekday_of_month,
    days_in_month,
    format_currency,
    month_name,
    search_transactions,
    transactions_of_type,
)
from finanzas.services.session import MappingStore, SessionManager
from finanzas.state import FinanceState
from finanzas.validation import FormValidator, parse_amount


st.set_page_config(
    page_title="Finanzas Pro",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

THEME_CSS = {
    Theme.DARK: """
<style>
    .stApp { background-color: #0f172a; color: #e2e8f0; }
    .stale-box { padding: 10px; border-left: 5px solid #f59e0b; background-color: #451a03; border-radius: 8px; }
    .alert-box { padding: 16px; border-left: 5px solid #ef4444; background-color: #450a0a; border-radius: 8px; }
</style>
""",
    Theme.LIGHT: """
<style>
    .stApp { background-color: #f8fafc; color: #0f172a; }
    .stale-box { padding: 10px; border-left: 5px solid #f59e0b; background-color: #fef3c7; border-radius: 8px; }
    .alert-box { padding: 16px; border-left: 5px solid #ef4444; background-color: #fee2e2; border-radius: 8px; }
</style>
""",
}

PAGES = [
    "📊 Inicio",
    "💵 Ingresos",
    "🧾 Gastos",
    "💳 Deudas",
    "🎯 Metas",
    "📅 Calendario",
    "📈 Reportes",
    "🤖 Asesor IA",
]

WEEKDAYS = ["Dom", "Lun", "Mar", "Mié", "Jue", "Vie", "Sáb"]


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components() -> AppComponents:
    """Get or create application components (cached)."""
    return create_app_components(use_storage=True)


def get_session(components: AppComponents) -> SessionManager:
    """This browser's session. Lives in st.session_state, never in the resource cache."""
    return components.session_for(MappingStore(st.session_state))


def money(amount) -> str:
    return format_currency(amount, get_settings().app.currency_symbol)


def report(result: MutationResult, success_message: str) -> None:
    """Tell the user what happened to a change."""
    if result.ok:
        st.toast(success_message)
    elif result.status is MutationStatus.FAILED:
        st.warning(f"Guardado solo en este dispositivo: {result.error}")


def show_validation(validation) -> bool:
    """Render form issues. Returns True if the form can be submitted."""
    for issue in validation.issues:
        if issue.severity == "error":
            st.error(issue.message)
        else:
            st.warning(issue.message)
    return validation.is_valid


def get_state(components: AppComponents, session: SessionManager) -> Optional[FinanceState]:
    """The state container of the logged-in user, loaded on first access."""
    user = session.current_user()
    if user is None:
        st.session_state.pop("finance_state", None)
        return None

    state = st.session_state.get("finance_state")
    if state is None or state.user.id != user.id:
        with st.spinner("Cargando tus datos..."):
            state = run_async(components.auth_flow(session).open_state(user))
        if not state.loaded:
            st.error("No se pudieron cargar tus datos. Revisa la conexión con el almacenamiento.")
        st.session_state.finance_state = state
    return state


def main():
    """Main application entry point."""
    components = get_components()
    session = get_session(components)
    theme = session.theme()
    st.markdown(THEME_CSS[theme], unsafe_allow_html=True)

    if components.is_offline:
        st.info("Modo sin conexión: los datos se guardan solo mientras la app esté abierta.")

    state = get_state(components, session)
    if state is None:
        render_auth_page(components.auth_flow(session))
        return

    st.sidebar.title("💰 Finanzas Pro")
    st.sidebar.caption(f"Hola, {state.user.username}")
    page = st.sidebar.radio("Ir a:", PAGES, index=0)

    st.sidebar.markdown("---")
    render_search(state)

    st.sidebar.markdown("---")
    theme_label = "☀️ Tema claro" if theme is Theme.DARK else "🌙 Tema oscuro"
    if st.sidebar.button(theme_label):
        session.toggle_theme()
        st.rerun()
    if st.sidebar.button("Cerrar sesión"):
        run_async(components.auth_flow(session).logout())
        st.session_state.pop("finance_state", None)
        st.rerun()

    if state.stale_ids:
        st.markdown(
            f'<div class="stale-box">⚠️ {len(state.stale_ids)} cambio(s) no se pudieron '
            "guardar en la nube. Se conservan en esta sesión.</div>",
            unsafe_allow_html=True,
        )

    if page == "📊 Inicio":
        render_dashboard(state)
    elif page == "💵 Ingresos":
        render_transactions_page(state, TransactionType.INCOME)
    elif page == "🧾 Gastos":
        render_transactions_page(state, TransactionType.EXPENSE)
    elif page == "💳 Deudas":
        render_debts_page(state)
    elif page == "🎯 Metas":
        render_goals_page(state)
    elif page == "📅 Calendario":
        render_calendar_page(state)
    elif page == "📈 Reportes":
        render_reports_page(components, state)
    elif page == "🤖 Asesor IA":
        render_advisor_page(components, state)


def render_auth_page(auth_flow: AuthFlow):
    st.title("💰 Finanzas Pro")
    st.markdown("Controla tus ingresos, gastos, deudas y metas de ahorro.")

    login_tab, register_tab = st.tabs(["Iniciar sesión", "Crear cuenta"])

    with login_tab:
        with st.form("login_form"):
            username = st.text_input("Usuario")
            password = st.text_input("Contraseña", type="password")
            submitted = st.form_submit_button("Entrar", type="primary")
        if submitted:
            try:
                run_async(auth_flow.login(username, password))
                st.rerun()
            except AuthError as e:
                st.error(str(e))

    with register_tab:
        with st.form("register_form"):
            username = st.text_input("Usuario", key="register_username")
            password = st.text_input("Contraseña", type="password", key="register_password")
            submitted = st.form_submit_button("Registrarme", type="primary")
        if submitted:
            try:
                run_async(auth_flow.register(username, password))
                st.rerun()
            except AuthError as e:
                st.error(str(e))


def render_search(state: FinanceState):
    settings = get_settings().app
    term = st.sidebar.text_input("🔍 Buscar movimientos")
    if not term:
        return
    matches = search_transactions(
        state.transactions,
        term,
        limit=settings.search_result_limit,
        min_length=settings.search_min_length,
    )
    if not matches:
        st.sidebar.caption("Sin resultados")
    for t in matches:
        sign = "+" if t.type == TransactionType.INCOME else "-"
        st.sidebar.caption(f"{t.date} · {t.category} · {sign}{money(t.amount)}")


def render_dashboard(state: FinanceState):
    st.title("📊 Resumen")
    summary = state.summary()

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Ingresos", money(summary.total_income))
    col2.metric("Gastos", money(summary.total_expense))
    col3.metric("Balance", money(summary.net_balance))
    col4.metric("Tasa de ahorro", f"{summary.savings_rate}%")

    col1, col2 = st.columns(2)
    col1.metric("Deuda total", money(summary.total_debt))
    col2.metric("Ahorro proyectado", money(summary.projected_savings))

    totals = compute_income_vs_expense(state.transactions)
    bars = pd.DataFrame(
        [{"tipo": type_.label, "monto": float(amount)} for type_, amount in totals.items()]
    )
    st.subheader("Ingresos vs. gastos")
    st.altair_chart(
        alt.Chart(bars).mark_bar().encode(
            x=alt.X("tipo:N", title=None),
            y=alt.Y("monto:Q", title="Monto"),
            color=alt.Color(
                "tipo:N",
                scale=alt.Scale(domain=["Ingresos", "Gastos"], range=["#10b981", "#ef4444"]),
                legend=None,
            ),
        ),
        use_container_width=True,
    )

    series = compute_balance_series(state.transactions)
    if series:
        st.subheader("Evolución del balance")
        df = pd.DataFrame([{"fecha": p.date, "balance": float(p.balance)} for p in series])
        st.altair_chart(
            alt.Chart(df).mark_area(opacity=0.4, line=True).encode(
                x=alt.X("fecha:T", title="Fecha"),
                y=alt.Y("balance:Q", title="Balance"),
                tooltip=[
                    alt.Tooltip("fecha:T", title="Fecha"),
                    alt.Tooltip("balance:Q", title="Balance", format=",.0f"),
                ],
            ),
            use_container_width=True,
        )

    st.subheader("Gastos por categoría")
    expenses = compute_category_totals(state.transactions, TransactionType.EXPENSE)
    if expenses:
        render_category_pie(expenses)
    else:
        st.caption("Aún no hay gastos registrados")

    if summary.upcoming_payments:
        st.subheader("Próximos vencimientos")
        for debt in summary.upcoming_payments:
            st.write(f"**{debt.name}** · {debt.deadline} · {money(debt.balance)}")


def render_category_pie(totals):
    df = pd.DataFrame([{"categoria": c.category, "monto": float(c.total)} for c in totals])
    st.altair_chart(
        alt.Chart(df).mark_arc(innerRadius=50).encode(
            theta=alt.Theta(field="monto", type="quantitative"),
            color=alt.Color(field="categoria", type="nominal", legend=alt.Legend(title="Categoría")),
            tooltip=[
                alt.Tooltip("categoria:N", title="Categoría"),
                alt.Tooltip("monto:Q", title="Monto", format=",.0f"),
            ],
        ),
        use_container_width=True,
    )


def render_transactions_page(state: FinanceState, type_: TransactionType):
    st.title(f"{'💵' if type_ == TransactionType.INCOME else '🧾'} {type_.label}")
    validator = FormValidator()
    tags = state.tags[type_]

    with st.form(f"{type_.value}_form", clear_on_submit=True):
        col1, col2 = st.columns(2)
        amount = col1.number_input("Monto", min_value=0.0, step=1000.0)
        category = col2.selectbox("Categoría", tags) if tags else col2.text_input("Categoría")
        tx_date = col1.date_input("Fecha", value=date.today())
        description = col2.text_input("Descripción")
        submitted = st.form_submit_button("Agregar", type="primary")

    if submitted:
        category = category or "General"
        validation = validator.validate_transaction_form(amount, category, tx_date)
        if show_validation(validation):
            transaction = Transaction(
                date=tx_date,
                type=type_,
                category=category,
                amount=parse_amount(amount).quantize(Decimal("0.01")),
                description=description,
            )
            report(run_async(state.add_transaction(transaction)), "Movimiento agregado")

    with st.expander("➕ Nueva categoría"):
        new_tag = st.text_input("Nombre", key=f"new_tag_{type_.value}")
        if st.button("Crear categoría", key=f"create_tag_{type_.value}") and new_tag:
            result = run_async(state.add_tag(type_, new_tag))
            if result.status is MutationStatus.SKIPPED:
                st.info("Esa categoría ya existe")
            else:
                report(result, "Categoría creada")

    totals = compute_category_totals(state.transactions, type_)
    if totals:
        render_category_pie(totals)

    for t in transactions_of_type(state.transactions, type_):
        col1, col2, col3 = st.columns([3, 2, 1])
        marker = " ⚠️" if state.is_stale(t.id) else ""
        col1.write(f"**{t.category}**{marker} · {t.description or '—'}  \n{t.date}")
        col2.write(money(t.amount))
        if col3.button("🗑️", key=f"del_tx_{t.id}"):
            report(run_async(state.delete_transaction(t.id)), "Movimiento eliminado")
            st.rerun()


def render_debts_page(state: FinanceState):
    st.title("💳 Deudas y compromisos")
    validator = FormValidator()

    col1, col2 = st.columns(2)
    col1.metric("Deuda total", money(sum((d.balance for d in state.debts), Decimal("0"))))
    col2.metric("Deudas activas", active_debt_count(state.debts))

    with st.form("debt_form", clear_on_submit=True):
        col1, col2 = st.columns(2)
        name = col1.text_input("Nombre")
        total_amount = col2.number_input("Monto total", min_value=0.0, step=1000.0)
        deadline = col1.date_input("Fecha límite", value=date.today())
        category = col2.selectbox("Categoría", state.tags[TransactionType.EXPENSE] + ["Otro"])
        interest_rate = col1.number_input("Tasa de interés (%)", min_value=0.0, step=0.1)
        payment_day = col2.number_input("Día de pago", min_value=0, max_value=31, step=1)
        submitted = st.form_submit_button("Agregar deuda", type="primary")

    if submitted:
        payment_day = int(payment_day) or None
        validation = validator.validate_debt_form(name, total_amount, interest_rate, payment_day)
        if show_validation(validation):
            total = parse_amount(total_amount)
            debt = Debt(
                name=name,
                total_amount=total,
                balance=total,
                deadline=deadline,
                category=category or "Otro",
                interest_rate=parse_amount(interest_rate) or None,
                payment_day=payment_day,
            )
            report(run_async(state.add_debt(debt)), "Deuda agregada")

    for debt in state.debts:
        with st.container(border=True):
            marker = " ⚠️" if state.is_stale(debt.id) else ""
            st.subheader(f"{debt.name}{marker}")
            col1, col2, col3 = st.columns(3)
            col1.write(f"Saldo: **{money(debt.balance)}**")
            col2.write(f"Total: {money(debt.total_amount)}")
            days = debt.days_left()
            if days is not None:
                col3.write(f"Vence en {days} días" if days >= 0 else "Vencida")

            pay_col, btn_col, del_col = st.columns([3, 1, 1])
            amount = pay_col.number_input(
                "Abonar", min_value=0.0, step=1000.0, key=f"pay_{debt.id}"
            )
            if btn_col.button("Pagar", key=f"pay_btn_{debt.id}"):
                if show_validation(validator.validate_amount(amount)):
                    balance_result, expense_result = run_async(
                        state.pay_debt(debt.id, parse_amount(amount))
                    )
                    report(balance_result, "Abono registrado")
                    report(expense_result, "Gasto registrado")
                    st.rerun()
            if del_col.button("🗑️", key=f"del_debt_{debt.id}"):
                report(run_async(state.delete_debt(debt.id)), "Deuda eliminada")
                st.rerun()


def render_goals_page(state: FinanceState):
    st.title("🎯 Metas de ahorro")
    validator = FormValidator()

    with st.form("goal_form", clear_on_submit=True):
        col1, col2 = st.columns(2)
        name = col1.text_input("Nombre")
        target_amount = col2.number_input("Meta", min_value=0.0, step=10000.0)
        deadline = col1.date_input("Fecha límite", value=date.today())
        color = col2.color_picker("Color", value="#0ea5e9")
        submitted = st.form_submit_button("Crear meta", type="primary")

    if submitted:
        validation = validator.validate_goal_form(name, target_amount, deadline)
        if show_validation(validation):
            goal = SavingsGoal(
                name=name,
                target_amount=parse_amount(target_amount),
                deadline=deadline,
                color=color,
            )
            report(run_async(state.add_goal(goal)), "Meta creada")

    for goal in state.goals:
        with st.container(border=True):
            marker = " ⚠️" if state.is_stale(goal.id) else ""
            st.subheader(f"{goal.name}{marker}")
            st.progress(goal.progress / 100, text=f"{goal.progress}%")
            st.write(f"{money(goal.current_amount)} de {money(goal.target_amount)} · {goal.deadline}")

            required = compute_required_savings(goal)
            if required.amount > 0:
                st.caption(f"{required.label} {money(required.amount)}")
            else:
                st.caption(required.label)

            add_col, btn_col, del_col = st.columns([3, 1, 1])
            amount = add_col.number_input(
                "Agregar fondos", min_value=0.0, step=1000.0, key=f"fund_{goal.id}"
            )
            if btn_col.button("Agregar", key=f"fund_btn_{goal.id}"):
                if show_validation(validator.validate_amount(amount, form="contribution")):
                    result, completed = run_async(
                        state.contribute_to_goal(goal.id, parse_amount(amount))
                    )
                    report(result, "Fondos agregados")
                    if completed:
                        st.balloons()
                    st.rerun()
            if del_col.button("🗑️", key=f"del_goal_{goal.id}"):
                report(run_async(state.delete_goal(goal.id)), "Meta eliminada")
                st.rerun()


def render_calendar_page(state: FinanceState):
    st.title("📅 Calendario")
    today = date.today()
    col1, col2 = st.columns(2)
    year = int(col1.number_input("Año", value=today.year, step=1))
    month = col2.selectbox(
        "Mes", list(range(1, 13)), index=today.month - 1, format_func=month_name
    )

    buckets = compute_calendar_buckets(state.transactions, state.debts, year, month)
    offset = first_weekday_of_month(year, month)
    last_day = days_in_month(year, month)

    header = st.columns(7)
    for col, name in zip(header, WEEKDAYS):
        col.markdown(f"**{name}**")

    cells = [None] * offset + list(range(1, last_day + 1))
    for week_start in range(0, len(cells), 7):
        row = st.columns(7)
        for col, day in zip(row, cells[week_start:week_start + 7]):
            if day is None:
                continue
            bucket = buckets.get(day)
            lines = [f"**{day}**"]
            if bucket:
                if bucket.income_total:
                    lines.append(f"🟢 {money(bucket.income_total)}")
                if bucket.expense_total:
                    lines.append(f"🔴 {money(bucket.expense_total)}")
                lines.extend(f"⏰ {event}" for event in bucket.events)
            col.markdown("  \n".join(lines))


def render_reports_page(components: AppComponents, state: FinanceState):
    st.title("📈 Reportes")
    timeframe = st.radio(
        "Periodo",
        list(Timeframe),
        format_func=lambda tf: tf.period_name,
        horizontal=True,
    )

    if st.button("Analizar periodo con IA", type="primary"):
        with st.spinner("Analizando..."):
            try:
                period, advice = run_async(
                    components.advisory_flow.period_advice(state, timeframe)
                )
            except AdvisoryError as e:
                st.error(str(e))
                return

        col1, col2, col3 = st.columns(3)
        col1.metric("Ingresos", money(period.income))
        col2.metric("Gastos", money(period.expense))
        col3.metric("Flujo de caja", money(period.balance))

        st.subheader("Resumen")
        st.write(advice.summary)
        st.subheader("Análisis de gastos")
        st.write(advice.expense_analysis)
        st.subheader("Consejo de inversión")
        st.write(advice.investment_tip)
        st.success(f"Acción: {advice.action_item}")


def render_advisor_page(components: AppComponents, state: FinanceState):
    st.title("🤖 Asesor financiero")
    st.markdown("Recibe un análisis de tu situación y recomendaciones de ahorro.")

    if st.button("Obtener consejo", type="primary"):
        with st.spinner("Consultando al asesor..."):
            try:
                st.session_state.advice = run_async(
                    components.advisory_flow.snapshot_advice(state)
                )
            except AdvisoryError as e:
                st.session_state.advice = None
                st.error(str(e))

    advice = st.session_state.get("advice")
    if advice is None:
        return

    if advice.has_alert:
        st.markdown(f'<div class="alert-box">⚠️ {advice.alert}</div>', unsafe_allow_html=True)
    st.subheader("Análisis")
    st.write(advice.analysis)
    st.metric("Ahorro mensual sugerido", advice.savings_target)

    for rec in advice.recommendations:
        with st.container(border=True):
            st.markdown(f"**{rec.title}** · {rec.type}")
            st.write(rec.description)
            if rec.risk_level:
                st.caption(f"Riesgo: {rec.risk_level}")

    if st.button("Cerrar"):
        st.session_state.advice = None
        st.rerun()


if __name__ == "__main__":
    main()
