from PIL import Image, ImageDraw, ImageFont
from datetime import timedelta


def load_fonts():
    """Loads a font with Cyrillic glyphs, falling back to the default one."""
    for font_name in ("Arial.ttf", "DejaVuSans.ttf"):
        try:
            return ImageFont.truetype(font_name, 12), ImageFont.truetype(font_name, 14)
        except IOError:
            continue
    return ImageFont.load_default(), ImageFont.load_default()


def generate_gantt_chart(tasks, critical_ids=None, title="Диаграмма Ганта"):
    """
    Generates a Gantt chart for the scheduled tasks of a project.

    Args:
        tasks: List of planning.models.Task
        critical_ids: IDs of critical tasks; when None the tasks' own
            is_on_critical_path flags are used
        title: Chart title

    Returns:
        PIL Image object with the Gantt chart
    """
    font, title_font = load_fonts()

    # Задачи без дат на диаграмме не показываем
    scheduled = [task for task in tasks if task.start_date and task.due_date]
    if not scheduled:
        # Создаем пустое изображение с сообщением об ошибке
        image = Image.new('RGB', (400, 200), 'white')
        draw = ImageDraw.Draw(image)
        draw.text((10, 10), "Нет задач для отображения", fill="black", font=font)
        return image

    if critical_ids is None:
        critical_ids = {task.id for task in scheduled if task.is_on_critical_path}
    else:
        critical_ids = set(critical_ids)

    # Сортируем задачи по дате начала
    sorted_tasks = sorted(scheduled, key=lambda task: (task.start_date, task.id))

    # Находим общий временной диапазон
    start_date = min(task.start_date for task in sorted_tasks)
    end_date = max(task.due_date for task in sorted_tasks)
    total_days = (end_date - start_date).days + 1

    # Параметры изображения
    task_height = 30
    task_spacing = 10
    left_margin = 200
    top_margin = 50
    right_margin = 50
    bottom_margin = 50
    day_width = 20

    # Размеры изображения
    width = left_margin + (total_days * day_width) + right_margin
    height = top_margin + (len(sorted_tasks) * (task_height + task_spacing)) + bottom_margin

    image = Image.new('RGB', (width, height), 'white')
    draw = ImageDraw.Draw(image)

    # Рисуем заголовок
    draw.text((10, 10), title, font=title_font, fill='black')

    # Рисуем временную шкалу
    current_date = start_date
    for day in range(total_days):
        x = left_margin + (day * day_width)
        draw.text((x, top_margin - 20), current_date.strftime('%d.%m'), font=font, fill='black')
        current_date += timedelta(days=1)

    for i, task in enumerate(sorted_tasks):
        y = top_margin + (i * (task_height + task_spacing))
        draw.text((10, y + 5), task.name, font=font, fill='black')

        start_x = left_margin + ((task.start_date - start_date).days * day_width)
        end_x = left_margin + ((task.due_date - start_date).days * day_width)

        color = 'red' if task.id in critical_ids else 'blue'

        if task.duration_days == 0:
            # Контрольная точка - ромб
            middle = y + task_height / 2
            half = task_height / 2
            draw.polygon(
                [(start_x, y), (start_x + half, middle), (start_x, y + task_height), (start_x - half, middle)],
                fill=color, outline='black'
            )
            continue

        draw.rectangle([start_x, y, end_x, y + task_height], fill=color, outline='black')

        # Добавляем информацию о длительности
        duration_text = f"{task.duration_days} дн."
        text_width = draw.textlength(duration_text, font=font)
        text_x = start_x + ((end_x - start_x - text_width) / 2)
        draw.text((text_x, y + 5), duration_text, font=font, fill='white')

    return image
