from utils.selector_helper import ElementDescriptor, Strategy

# ===== 导航 =====
user_name_display = ElementDescriptor.of("当前用户名", "#userNameDisplay")
logout_button = ElementDescriptor.of("退出登录按钮", "#logoutBtn", Strategy.role("button", name="Logout"))

# ===== 点评表单 =====
review_form = ElementDescriptor.of("点评表单", "#reviewForm")
restaurant_name_input = ElementDescriptor.of("餐厅名称输入框", "#restaurantName", 'input[name="restaurantName"]')
food_item_input = ElementDescriptor.of("菜品输入框", "#foodItem", 'input[name="foodItem"]')
review_textarea = ElementDescriptor.of("点评正文输入框", "#review", 'textarea[name="review"]')
submit_button = ElementDescriptor.of("提交点评按钮", 'button[type="submit"]')
review_error = ElementDescriptor.of("点评错误提示", "#reviewError")
review_success = ElementDescriptor.of("点评成功提示", "#reviewSuccess")

# 评分单选组，{value} 为 1..5
rating_options = ElementDescriptor.of("评分选项组", 'input[name="rating"]')
rating_option = ElementDescriptor.of(
    "{value} 星评分",
    "#star{value}",
    'input[name="rating"][value="{value}"]',
)
checked_rating = ElementDescriptor.of("已选中的评分", 'input[name="rating"]:checked')

# ===== 位置功能 =====
location_toggle = ElementDescriptor.of("位置开关", "#locationToggle")
toggle_status_text = ElementDescriptor.of("位置开关状态文字", "#toggleStatusText")
zip_code_input = ElementDescriptor.of("邮编输入框", "#zipCodeInput")
search_zip_button = ElementDescriptor.of("邮编搜索按钮", "#searchZipBtn")
location_status = ElementDescriptor.of("位置状态提示", "#locationStatus")

# ===== 点评列表 =====
reviews_list = ElementDescriptor.of("点评列表", "#reviewsList")
review_cards = ElementDescriptor.of(
    "点评卡片",
    ".review-card",
    Strategy.test_id("review-card"),
)
nearby_restaurants_header = ElementDescriptor.of("附近餐厅标题", ".location-header h2")

# 卡片内字段（在单张卡片范围内解析）
card_restaurant = ElementDescriptor.of("卡片-餐厅名称", ".restaurant-name", "h3")
card_food_item = ElementDescriptor.of("卡片-菜品", ".food-item")
card_rating = ElementDescriptor.of("卡片-评分", ".rating", ".stars")
card_review_text = ElementDescriptor.of("卡片-正文", ".review-text", "p")
