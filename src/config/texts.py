"""面向用户的回复文本 (保加利亚语)

所有回复都集中在这里，core 模块只引用常量或调用格式化函数。
"""

HELP_TEXT = "\n".join([
    "Работя само със скриптове (без AI). Ползвай тези команди/формати:",
    "",
    "• /smart (умен разговор) | /script (връщане към скриптове)",
    "• Нова задача: <заглавие>",
    "• Нова задача към <име>: <заглавие>",
    "• Нова задача към <име> в <лист>: <заглавие>",
    "  (по желание: срок 2026-01-06, приоритет high)",
    "• Запиши в Notion: <текст>",
    "• Запиши в ClickUp: <заглавие>",
    "• Запиши ми: <текст> (ще те питам къде)",
    "• Задача: <текст> до 06.01.2026 12:00",
    "• Напомни ми след 10 мин <текст>",
    "• Напомни ми в 18:30 <текст>",
    "• Напомни ми: <текст> (ще те питам кога)",
    "• готово / по-късно 30 мин",
    "• /reminders (активни напомняния)",
    "• /daily_planner (график за утре)",
    "• утре сутрин (прехвърля напомнянето за график към 09:00)",
    "• отклонение: <описание> (записва се към дневния график)",
])

SMART_ON = "Включих smart режим. Пиши свободно. За връщане към скриптове: /script."
SMART_OFF = "Изключих smart режим. Върнах те към скриптовете."
SCRIPT_MODE = "Върнах те към скриптовете."

# 提醒
REMINDER_ADDED = "Записах напомняне: {text}"
REMINDER_FIRED = 'Напомням ти: {text}\n\nОтговори с "готово" или "по-късно <мин/час>".'
REMINDER_DONE = "Отбелязах като изпълнено: {text}"
REMINDER_SNOOZED = "Ок, ще ти напомня по-късно: {text}"
REMINDER_LIST_EMPTY = "Нямаш активни напомняния."
REMINDER_LIST_HEADER = "Активни напомняния: {count}"
NOTE_REMINDER_TEXT = "Напомняне: {title}"
UNTITLED_TASK = "неуточнена задача"

# 待回答问题的追问
ASK_DESTINATION = 'Къде да го запиша? Отговори "Notion" или "ClickUp".'
REPROMPT_DESTINATION = 'Моля, избери: "Notion" или "ClickUp".'
NO_DESTINATIONS = "Нямам конфигурирани Notion цели. Кажи ми къде да запиша."
ASK_TARGET = "Избери къде да запиша задачата:\n{choices}"
REPROMPT_TARGET = "Моля, избери цел от списъка:\n{choices}"
ASK_REMINDER = 'Искаш ли да ти напомня за тази задача? ("да" / "не")'
REPROMPT_REMINDER = 'Моля, отговори с "да" или "не".'
ASK_REMINDER_TIME = "Кога да ти напомня? (30m, 1h, 2h, tomorrow-9, tomorrow-18 или напр. 18:30)"
REPROMPT_REMINDER_TIME = "Не разпознах времето. Избери от бутоните или напиши напр. '30 мин' или '18:30'."
ASK_DUE = (
    'Имаш задача без краен срок: "{title}". '
    'Моля, напиши краен срок (напр. 06.01.2026 12:00) или "няма краен срок".'
)
REPROMPT_DUE = "Не разпознах дата. Пример: 06.01.2026 12:00"
ASK_PLAN = "Опиши задачите за утре (можеш по редове)."
ASK_TASK_TITLE = "Напиши заглавие на задачата."
ASK_TASK_LIST = 'В кой лист да създам задачата? Напиши име на лист или "по подразбиране".\n{candidates}'
ASK_REMINDER_TEXT = "Какво да ти напомня?"
ASK_REMINDER_WHEN = "Кога да ти напомня? (напр. 10 мин или 18:30)"
REPROMPT_REMINDER_WHEN = "Моля, дай време (напр. 10 мин или 18:30)."

# 结果
NOTE_SAVED = "Записах задачата в Notion."
NOTE_SAVED_NO_REMINDER = "Записах задачата в Notion (без напомняне)."
NOTE_SAVED_WITH_REMINDER = "Записах задачата в Notion и създадох напомняне. ✅"
NOTE_SAVED_REMINDER_FAILED = "Записах в Notion, но грешка при напомняне: {error}"
TASK_CREATED = "Създадох задачата в ClickUp."
PLAN_SAVED = "Записах графика за {date}:\n{lines}"
PLAN_POSTPONED = "Ок, ще ти напомня за графика утре в 09:00."
PLAN_NOT_ACTIVE = "Нямам активно напомняне за график."
DEVIATION_SAVED = "Записах отклонението за {date}."
DAILY_PLAN_PROMPT = "Напомняне: време е да направиш график за утре. Напиши задачите си."
WEEKLY_HEADER = "Седмичен анализ (последни 7 дни):"
WEEKLY_DAY = "{date}: планирани {scheduled}, отклонения {deviations}"
WEEKLY_TOTAL_SCHEDULED = "Общо планирани: {count}"
WEEKLY_TOTAL_DEVIATIONS = "Общо отклонения: {count}"
WEEKLY_SCHEDULE_PREFIX = "Седмичен анализ: {line}"

# 错误
TRANSCRIBE_ERROR = "Грешка при транскрипция: {error}"
NOTION_ERROR = "Грешка при Notion: {error}"
CLICKUP_ERROR = "Грешка при ClickUp: {error}"
REMINDER_ERROR = "Грешка при напомняне: {error}"
DUE_PREFIX = "До {due}"
NO_DUE_BODY = "Без краен срок"

__all__ = [name for name in dir() if name.isupper()]
