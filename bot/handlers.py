import io

from telegram import Update
from telegram.ext import ContextTypes

from bot.messages import CSV_FORMAT_HELP, HELP_MESSAGE, USAGE_PROJECT, USAGE_TASK_DATES
from database.operations import get_project, get_user_projects
from logger import logger
from planning import schedule_service
from planning.exceptions import ScheduleConflictError, SchedulingError
from planning.gantt import generate_gantt_chart
from planning.network import format_critical_path
from utils.csv_import import CsvImportError, import_project_from_csv, parse_date


def format_task_dates(task):
    start = task.start_date.strftime('%d.%m.%Y') if task.start_date else '—'
    due = task.due_date.strftime('%d.%m.%Y') if task.due_date else '—'
    return f"{task.name}: {start} - {due}"


def parse_project_id(context, command):
    """Возвращает ID проекта из аргументов команды или текст подсказки."""
    if not context.args or not context.args[0].isdigit():
        return None, USAGE_PROJECT.format(command=command)
    return int(context.args[0]), None


def parse_task_dates(context, command):
    """Разбирает аргументы вида <ID задачи> <начало> <окончание>."""
    if len(context.args or []) != 3 or not context.args[0].isdigit():
        raise ValueError(USAGE_TASK_DATES.format(command=command))
    return int(context.args[0]), parse_date(context.args[1]), parse_date(context.args[2])


async def start(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Обработчик команды /start."""
    user = update.effective_user
    logger.info(f"Пользователь {user.id} запустил бота")
    await update.message.reply_text(
        f"Здравствуйте, {user.first_name}! Я помогаю следить за сроками задач проекта.\n\n" + HELP_MESSAGE
    )


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Обработчик команды /help."""
    await update.message.reply_text(HELP_MESSAGE)


async def get_my_id(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Сообщает пользователю его Telegram ID."""
    await update.message.reply_text(f"Ваш Telegram ID: {update.effective_user.id}")


async def list_projects(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Обработчик команды /projects."""
    projects = get_user_projects()
    if not projects:
        await update.message.reply_text("Проектов пока нет.")
        return

    lines = ["Проекты:"]
    for project in projects:
        lines.append(f"{project['id']}. {project['name']} (задач: {project['tasks_count']})")
    await update.message.reply_text("\n".join(lines))


async def show_critical_path(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Обработчик команды /critical <ID проекта>."""
    project_id, usage = parse_project_id(context, 'critical')
    if usage:
        await update.message.reply_text(usage)
        return

    project = get_project(project_id)
    if not project:
        await update.message.reply_text(f"Проект с ID {project_id} не найден.")
        return

    try:
        data = schedule_service.refresh_critical_path(project_id)
    except SchedulingError as e:
        logger.error(f"Ошибка расчета критического пути проекта {project_id}: {str(e)}")
        await update.message.reply_text(f"Не удалось рассчитать критический путь: {e}")
        return

    tasks_by_id = {task.id: task for task in data['tasks']}
    await update.message.reply_text(
        f"Проект «{project['name']}»\n" + format_critical_path(data['result'], tasks_by_id)
    )


async def send_gantt_chart(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Обработчик команды /gantt <ID проекта>."""
    project_id, usage = parse_project_id(context, 'gantt')
    if usage:
        await update.message.reply_text(usage)
        return

    project = get_project(project_id)
    if not project:
        await update.message.reply_text(f"Проект с ID {project_id} не найден.")
        return

    try:
        data = schedule_service.refresh_critical_path(project_id)
    except SchedulingError as e:
        logger.error(f"Ошибка построения диаграммы проекта {project_id}: {str(e)}")
        await update.message.reply_text(f"Не удалось построить диаграмму: {e}")
        return

    image = generate_gantt_chart(data['tasks'], data['critical_path'], title=project['name'])
    buffer = io.BytesIO()
    image.save(buffer, format='PNG')
    buffer.seek(0)
    await update.message.reply_photo(photo=buffer, caption="Красным отмечены задачи критического пути")


async def check_task_dates(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Обработчик команды /check <ID задачи> <начало> <окончание>."""
    try:
        task_id, start_date, due_date = parse_task_dates(context, 'check')
        result = schedule_service.check_task_dates(task_id, start_date, due_date)
    except (ValueError, SchedulingError) as e:
        await update.message.reply_text(str(e))
        return

    if result['valid']:
        await update.message.reply_text("✅ Новые даты не нарушают зависимости.")
        return

    lines = ["⚠️ Новые даты нарушают зависимости:"]
    lines.extend(f"• {violation.message}" for violation in result['violations'])
    await update.message.reply_text("\n".join(lines))


async def move_task(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Обработчик команды /move <ID задачи> <начало> <окончание>."""
    try:
        task_id, start_date, due_date = parse_task_dates(context, 'move')
        result = schedule_service.update_task_dates(task_id, start_date, due_date)
    except ScheduleConflictError as e:
        await update.message.reply_text(f"❌ Перенос невозможен. {e}")
        return
    except (ValueError, SchedulingError) as e:
        await update.message.reply_text(str(e))
        return

    lines = [f"Задача перенесена: {format_task_dates(result['task'])}"]
    if result['cascaded_updates']:
        lines.append("")
        lines.append("Сдвинуты зависимые задачи:")
        lines.extend(f"• {format_task_dates(task)}" for task in result['cascaded_updates'])
    await update.message.reply_text("\n".join(lines))


async def import_csv(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Создает проект из присланного CSV-файла; название берется из подписи или имени файла."""
    message = update.message
    document = message.document
    project_name = (message.caption or '').strip() or document.file_name.rsplit('.', 1)[0]

    file = await document.get_file()
    file_bytes = io.BytesIO()
    await file.download_to_memory(file_bytes)

    try:
        csv_content = file_bytes.getvalue().decode('utf-8-sig')
        project_id = import_project_from_csv(project_name, csv_content)
    except UnicodeDecodeError:
        await message.reply_text(f"Файл должен быть в кодировке UTF-8.\n\n{CSV_FORMAT_HELP}")
        return
    except CsvImportError as e:
        await message.reply_text(f"Ошибка при обработке CSV-файла: {e}\n\n{CSV_FORMAT_HELP}")
        return

    logger.info(f"Пользователь {update.effective_user.id} импортировал проект {project_id} из CSV")
    await message.reply_text(
        f"Проект «{project_name}» создан, ID {project_id}.\n"
        f"Критический путь: /critical {project_id}"
    )
