ACCESS_DENIED_MESSAGE = (
    "У вас нет доступа к этому боту.\n"
    "Ваш ID: {user_id}\n"
    "Передайте его администратору, чтобы получить доступ."
)

HELP_MESSAGE = (
    "Команды бота:\n"
    "/projects - список проектов\n"
    "/critical <ID проекта> - критический путь проекта\n"
    "/gantt <ID проекта> - диаграмма Ганта с критическим путем\n"
    "/check <ID задачи> <начало> <окончание> - проверить новые даты задачи\n"
    "/move <ID задачи> <начало> <окончание> - перенести задачу со сдвигом зависимых\n"
    "/my_id - узнать свой Telegram ID\n"
    "CSV-файл с задачами - создать проект (название в подписи к файлу)\n\n"
    "Даты указываются в формате ДД.ММ.ГГГГ или ГГГГ-ММ-ДД."
)

USAGE_PROJECT = "Укажите ID проекта, например: /{command} 1"
USAGE_TASK_DATES = "Использование: /{command} <ID задачи> <начало> <окончание>"

CSV_FORMAT_HELP = (
    "Формат CSV: key,title,start_date,due_date,duration,predecessors,is_milestone\n"
    "Предшественники перечисляются через ';' в виде KEY[:тип[:лаг]], "
    "тип - fs, ss, ff или sf.\n"
    "Пример: B,Разработка,2024-01-06,2024-01-09,,A:fs:0,"
)
