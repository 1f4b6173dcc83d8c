# app/core/bots/onboarding/config.py
"""
Texts, buttons and the region catalog for the job-seeker onboarding bot.
"""
from app.core.engine.bot_types import Translation
from app.core.engine.domain import Language


# ============================================================================
# LANGUAGE BUTTONS
# ============================================================================

LANGUAGE_BUTTONS: dict[str, Language] = {
    "🇺🇿 O'zbekcha": Language.UZ,
    "🇷🇺 Русский": Language.RU,
}

# Shown before a language is known, so always bilingual
LANGUAGE_PROMPT = "Пожалуйста, выберите язык / Iltimos, tilni tanlang:"
LANGUAGE_INVALID = "Пожалуйста, используйте кнопки / Iltimos, tugmalardan foydalaning"
START_HINT = "Пожалуйста, нажмите /start. / Boshlash uchun /start ni bosing."


# ============================================================================
# TRANSLATIONS
# ============================================================================

ONBOARDING_TRANSLATIONS: dict[str, Translation] = {
    "welcome_back": Translation(
        ru="С возвращением! Ваш профиль уже создан. ✅",
        uz="Qaytganingizdan xursandmiz! Profilingiz allaqachon yaratilgan. ✅",
    ),

    # Account
    "welcome_initial": Translation(
        ru="Добро пожаловать! 👋\nДавайте создадим ваш профиль соискателя.\n\nВведите ваш email:",
        uz="Xush kelibsiz! 👋\nKeling, ish izlovchi profilingizni yaratamiz.\n\nEmail manzilingizni kiriting:",
    ),
    "email_invalid": Translation(
        ru="⚠️ Некорректный email. Пример: name@example.com\nПопробуйте ещё раз:",
        uz="⚠️ Email noto'g'ri. Namuna: name@example.com\nQaytadan urinib ko'ring:",
    ),
    "email_accepted": Translation(
        ru="Отлично! Теперь придумайте пароль (минимум 8 символов).\nСообщение с паролем будет удалено из чата.",
        uz="Ajoyib! Endi parol o'ylab toping (kamida 8 ta belgi).\nParol yozilgan xabar chatdan o'chiriladi.",
    ),
    "password_short": Translation(
        ru="⚠️ Пароль слишком короткий. Нужно минимум 8 символов. Попробуйте ещё раз:",
        uz="⚠️ Parol juda qisqa. Kamida 8 ta belgi kerak. Qaytadan kiriting:",
    ),
    "confirm_password": Translation(
        ru="Повторите пароль для подтверждения:",
        uz="Tasdiqlash uchun parolni qayta kiriting:",
    ),
    "password_mismatch": Translation(
        ru="⚠️ Пароли не совпадают. Повторите пароль ещё раз:",
        uz="⚠️ Parollar mos kelmadi. Parolni yana bir bor kiriting:",
    ),
    "creating_account": Translation(
        ru="⏳ Создаём аккаунт...",
        uz="⏳ Akkaunt yaratilmoqda...",
    ),
    "email_registered": Translation(
        ru="⚠️ Этот email уже зарегистрирован. Нажмите /start, чтобы начать заново с другим email.",
        uz="⚠️ Bu email allaqachon ro'yxatdan o'tgan. Boshqa email bilan qaytadan boshlash uchun /start ni bosing.",
    ),
    "account_error": Translation(
        ru="❌ Не удалось создать аккаунт: {error}",
        uz="❌ Akkaunt yaratib bo'lmadi: {error}",
    ),
    "account_created": Translation(
        ru="✅ Аккаунт создан!\n\nКак вас зовут? Введите имя и фамилию:",
        uz="✅ Akkaunt yaratildi!\n\nIsmingiz nima? Ism va familiyangizni kiriting:",
    ),

    # Profile questions
    "name_prompt": Translation(
        ru="Введите имя и фамилию:",
        uz="Ism va familiyangizni kiriting:",
    ),
    "job_title_prompt": Translation(
        ru="Кем вы работаете? Укажите профессию (например: сантехник, повар):",
        uz="Kasbingiz nima? (masalan: santexnik, oshpaz):",
    ),
    "phone_prompt": Translation(
        ru="Ваш номер телефона:",
        uz="Telefon raqamingiz:",
    ),
    "region_prompt": Translation(
        ru="Выберите ваш регион:",
        uz="Viloyatingizni tanlang:",
    ),
    "region_hint": Translation(
        ru="⚠️ Пожалуйста, выберите регион кнопкой.",
        uz="⚠️ Iltimos, viloyatni tugma orqali tanlang.",
    ),
    "location_prompt": Translation(
        ru="Укажите ваш адрес или район:",
        uz="Manzilingiz yoki tumaningizni kiriting:",
    ),
    "bio_prompt": Translation(
        ru="Расскажите немного о себе и своём опыте:",
        uz="O'zingiz va tajribangiz haqida qisqacha yozing:",
    ),
    "experience_prompt": Translation(
        ru="Сколько лет опыта работы по профессии?",
        uz="Kasbingiz bo'yicha necha yillik tajribangiz bor?",
    ),
    "social_media_prompt": Translation(
        ru="Укажите ссылку на соцсеть (Instagram, Telegram) или нажмите «Пропустить»:",
        uz="Ijtimoiy tarmoq havolasini kiriting (Instagram, Telegram) yoki «O'tkazib yuborish» ni bosing:",
    ),
    "profile_pic_prompt": Translation(
        ru="Отправьте фото для профиля 📸 или нажмите «Пропустить»:",
        uz="Profil uchun rasm yuboring 📸 yoki «O'tkazib yuborish» ni bosing:",
    ),
    "btn_skip": Translation(
        ru="Пропустить",
        uz="O'tkazib yuborish",
    ),

    # Photo
    "photo_error": Translation(
        ru="⚠️ Пожалуйста, отправьте изображение или нажмите «Пропустить».",
        uz="⚠️ Iltimos, rasm yuboring yoki «O'tkazib yuborish» ni bosing.",
    ),
    "uploading_photo": Translation(
        ru="⏳ Загружаем фото...",
        uz="⏳ Rasm yuklanmoqda...",
    ),
    "photo_saved_bot": Translation(
        ru="ℹ️ Фото не удалось загрузить в хранилище, оно сохранено в боте.",
        uz="ℹ️ Rasmni omborga yuklab bo'lmadi, u botda saqlandi.",
    ),

    # Finalization
    "saving_profile": Translation(
        ru="⏳ Сохраняем профиль...",
        uz="⏳ Profil saqlanmoqda...",
    ),
    "listing_error": Translation(
        ru="⚠️ Не удалось добавить вас в список соискателей ({error}). Аккаунт при этом сохранён.",
        uz="⚠️ Sizni ish izlovchilar ro'yxatiga qo'shib bo'lmadi ({error}). Akkauntingiz saqlangan.",
    ),
    "profile_completed": Translation(
        ru="🎉 Профиль готов!\nНомер вашей анкеты: {id}",
        uz="🎉 Profil tayyor!\nAnketangiz raqami: {id}",
    ),
    "already_set_up": Translation(
        ru="Ваш профиль уже настроен. ✅",
        uz="Profilingiz allaqachon sozlangan. ✅",
    ),
    "unexpected_error": Translation(
        ru="Произошла непредвиденная ошибка. Попробуйте ещё раз.",
        uz="Kutilmagan xatolik yuz berdi. Qaytadan urinib ko'ring.",
    ),
}


# ============================================================================
# REGION CATALOG (canonical key -> labels)
# ============================================================================

REGIONS: dict[str, Translation] = {
    "tashkent_city": Translation(ru="Ташкент", uz="Toshkent shahri"),
    "tashkent_region": Translation(ru="Ташкентская область", uz="Toshkent viloyati"),
    "andijan": Translation(ru="Андижан", uz="Andijon"),
    "bukhara": Translation(ru="Бухара", uz="Buxoro"),
    "fergana": Translation(ru="Фергана", uz="Farg'ona"),
    "jizzakh": Translation(ru="Джизак", uz="Jizzax"),
    "kashkadarya": Translation(ru="Кашкадарья", uz="Qashqadaryo"),
    "khorezm": Translation(ru="Хорезм", uz="Xorazm"),
    "namangan": Translation(ru="Наманган", uz="Namangan"),
    "navoi": Translation(ru="Навои", uz="Navoiy"),
    "samarkand": Translation(ru="Самарканд", uz="Samarqand"),
    "surkhandarya": Translation(ru="Сурхандарья", uz="Surxondaryo"),
    "syrdarya": Translation(ru="Сырдарья", uz="Sirdaryo"),
    "karakalpakstan": Translation(ru="Каракалпакстан", uz="Qoraqalpog'iston"),
}
