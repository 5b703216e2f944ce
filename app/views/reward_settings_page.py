"""Reward settings page: editable form state and HTML rendering."""
import math
from dataclasses import dataclass, field
from html import escape
from typing import Dict, Optional

from app.models.reward_settings import RewardType
from app.schemas.reward_settings import REWARD_CATEGORIES, RewardSettingsViewModel


@dataclass(frozen=True)
class RewardSection:
    """Static copy for one configuration panel."""
    category: str
    heading: str
    description: str
    type_heading: str
    percentage_label: str
    fixed_label: str
    percentage_help: str
    fixed_help: str
    preview_label: str
    preview_suffix: str


SECTIONS = (
    RewardSection(
        category="affiliate_reward",
        heading="Affiliate Rewards",
        description="Set commission for affiliates when their referrals make a purchase",
        type_heading="Reward Type",
        percentage_label="Commission Percentage",
        fixed_label="Commission Amount",
        percentage_help="Affiliates earn this percentage of each sale",
        fixed_help="Affiliates earn this fixed amount per sale",
        preview_label="Affiliates earn:",
        preview_suffix="per sale",
    ),
    RewardSection(
        category="customer_reward",
        heading="Customer Rewards",
        description="Set discount for customers who use an affiliate link",
        type_heading="Reward Type",
        percentage_label="Discount Percentage",
        fixed_label="Discount Amount",
        percentage_help="Customers get this percentage off their order",
        fixed_help="Customers get this fixed amount off their order",
        preview_label="Customers get:",
        preview_suffix="off",
    ),
    RewardSection(
        category="next_order_discount",
        heading="Next Order Discount",
        description=(
            "Automatically create a discount coupon for customers after their order "
            "(only if they didn't use a coupon)"
        ),
        type_heading="Discount Type",
        percentage_label="Discount Percentage",
        fixed_label="Discount Amount",
        percentage_help="Single-use coupon created automatically for next purchase",
        fixed_help="Single-use coupon created automatically for next purchase",
        preview_label="Next order coupon:",
        preview_suffix="off",
    ),
)


def format_number(value: Optional[float]) -> str:
    """Render a stored number as form text: 10.0 -> "10", NaN -> "NaN"."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
    return str(value)


def format_reward(reward_type: str, value: str) -> str:
    """Preview text for one reward: "15%" or "$15"."""
    if reward_type == RewardType.PERCENTAGE.value:
        return f"{value}%"
    return f"${value}"


@dataclass
class RewardSettingsFormState:
    """
    Local editable state of the settings form.

    Six independent fields (a type and the raw value text per category),
    hydrated once from the loader's view model. Changing a type never
    touches the paired value.

    In the browser the page's inline script does the same edits in the
    DOM; this class is the server-side model of that behaviour. The routes
    use it to hydrate the rendered form and the tests drive its edit rules.
    """
    types: Dict[str, str] = field(default_factory=dict)
    values: Dict[str, str] = field(default_factory=dict)
    is_submitting: bool = False

    @classmethod
    def from_view_model(cls, view_model: RewardSettingsViewModel) -> "RewardSettingsFormState":
        settings = view_model.settings
        state = cls()
        for category in REWARD_CATEGORIES:
            state.types[category] = getattr(settings, f"{category}_type") or ""
            state.values[category] = format_number(getattr(settings, f"{category}_value"))
        return state

    def _check_category(self, category: str) -> None:
        if category not in REWARD_CATEGORIES:
            raise ValueError(f"Unknown reward category: {category}")

    def select_type(self, category: str, reward_type: str) -> None:
        self._check_category(category)
        self.types[category] = RewardType(reward_type).value

    def set_value(self, category: str, text: str) -> None:
        self._check_category(category)
        self.values[category] = text

    def preview(self, category: str) -> str:
        self._check_category(category)
        return format_reward(self.types.get(category, ""), self.values.get(category, ""))

    def to_form_data(self) -> Dict[str, str]:
        """Serialize all six fields into the flat field set the save action expects."""
        data = {}
        for category in REWARD_CATEGORIES:
            data[f"{category}_type"] = self.types.get(category, "")
            data[f"{category}_value"] = self.values.get(category, "")
        return data

    def submit(self) -> Dict[str, str]:
        """Mark a save in progress and return the field set to post."""
        self.is_submitting = True
        return self.to_form_data()

    def finish_submit(self) -> None:
        self.is_submitting = False


# ==================== HTML ====================

PAGE_STYLE = """
    body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
           background: #f1f2f4; color: #303030; margin: 0; }
    .page { max-width: 1000px; margin: 0 auto; padding: 24px; }
    .page-header { display: flex; justify-content: space-between; align-items: center; margin-bottom: 16px; }
    .page-header h1 { font-size: 20px; margin: 0; }
    .layout { display: grid; grid-template-columns: 2fr 1fr; gap: 16px; align-items: start; }
    .section { background: #fff; border-radius: 12px; padding: 16px; margin-bottom: 16px;
               box-shadow: 0 1px 0 rgba(0,0,0,.07); }
    .section h2 { font-size: 14px; margin: 0 0 8px 0; }
    .section h3 { font-size: 13px; margin: 16px 0 8px 0; }
    .type-options { display: flex; gap: 8px; }
    .type-options input { position: absolute; opacity: 0; }
    .type-options label { padding: 6px 12px; border-radius: 8px; border: 1px solid #c9cccf;
                          background: #fff; cursor: pointer; }
    .type-options input:checked + label { background: #303030; color: #fff; border-color: #303030; }
    .value-field { display: flex; align-items: center; gap: 6px; }
    .value-field input { padding: 6px 8px; border: 1px solid #8a8a8a; border-radius: 8px; width: 160px; }
    .subdued { color: #616161; font-size: 13px; }
    .primary { background: #303030; color: #fff; border: 0; border-radius: 8px; padding: 8px 14px; cursor: pointer; }
    .primary[disabled] { opacity: .6; cursor: default; }
    .banner { background: #cdfee1; border-radius: 8px; padding: 8px 12px; margin-bottom: 16px; }
"""

# Keeps suffix, headings, help text and preview in step with the inputs.
PAGE_SCRIPT = """
    document.querySelectorAll('[data-category]').forEach(function (section) {
      var category = section.dataset.category;
      function refresh() {
        var checked = section.querySelector('input[type=radio]:checked');
        var type = checked ? checked.value : '';
        var value = section.querySelector('input[name=' + category + '_value]').value;
        var percentage = type === 'percentage';
        section.querySelector('.value-heading').textContent =
          percentage ? section.dataset.percentageLabel : section.dataset.fixedLabel;
        section.querySelector('.suffix').textContent = percentage ? '%' : '$';
        section.querySelector('.help').textContent =
          percentage ? section.dataset.percentageHelp : section.dataset.fixedHelp;
        document.getElementById('preview-' + category).textContent =
          percentage ? value + '%' : '$' + value;
      }
      section.addEventListener('change', refresh);
      section.addEventListener('input', refresh);
    });
    document.getElementById('settings-form').addEventListener('submit', function () {
      var button = document.getElementById('save-button');
      button.disabled = true;
      button.textContent = 'Saving...';
    });
"""


def _type_button(category: str, reward_type: RewardType, label: str, current: str) -> str:
    input_id = f"{category}_type_{reward_type.value}"
    checked = " checked" if current == reward_type.value else ""
    return (
        f'<input type="radio" id="{input_id}" name="{category}_type" '
        f'value="{reward_type.value}"{checked}>'
        f'<label for="{input_id}">{escape(label)}</label>'
    )


def _current_type_button(category: str, current: str) -> str:
    # A stored type outside the known set stays selected so a save resubmits it
    if current in {reward_type.value for reward_type in RewardType}:
        return ""
    input_id = f"{category}_type_current"
    return (
        f'<input type="radio" id="{input_id}" name="{category}_type" '
        f'value="{escape(current)}" checked>'
        f'<label for="{input_id}">{escape(current or "Not set")}</label>'
    )


def _render_section(section: RewardSection, state: RewardSettingsFormState) -> str:
    category = section.category
    reward_type = state.types.get(category, "")
    value = state.values.get(category, "")
    percentage = reward_type == RewardType.PERCENTAGE.value

    return f"""
      <section class="section" data-category="{category}"
               data-percentage-label="{escape(section.percentage_label)}"
               data-fixed-label="{escape(section.fixed_label)}"
               data-percentage-help="{escape(section.percentage_help)}"
               data-fixed-help="{escape(section.fixed_help)}">
        <h2>{escape(section.heading)}</h2>
        <p class="subdued">{escape(section.description)}</p>
        <h3>{escape(section.type_heading)}</h3>
        <div class="type-options">
          {_type_button(category, RewardType.PERCENTAGE, "Percentage", reward_type)}
          {_type_button(category, RewardType.FIXED, "Fixed Amount", reward_type)}
          {_current_type_button(category, reward_type)}
        </div>
        <h3 class="value-heading">{escape(section.percentage_label if percentage else section.fixed_label)}</h3>
        <div class="value-field">
          <input type="number" step="any" name="{category}_value" value="{escape(value)}">
          <span class="suffix">{"%" if percentage else "$"}</span>
        </div>
        <p class="subdued help">{escape(section.percentage_help if percentage else section.fixed_help)}</p>
      </section>"""


def _render_preview(state: RewardSettingsFormState) -> str:
    lines = ""
    for section in SECTIONS:
        lines += f"""
        <p><strong>{escape(section.preview_label)}</strong>
          <span id="preview-{section.category}">{escape(state.preview(section.category))}</span>
          {escape(section.preview_suffix)}</p>"""

    return f"""
      <aside class="section">
        <h2>Rewards Preview</h2>{lines}
      </aside>"""


def render_reward_settings_page(
    state: RewardSettingsFormState,
    shop: str,
    action_url: str,
    session_token: str = "",
    saved: bool = False,
) -> str:
    """
    Render the full settings page.

    Args:
        state: Current form state
        shop: Shop domain shown in the title
        action_url: Where the form posts
        session_token: Page session posted back with the form
        saved: Show the "Settings saved" banner

    Returns:
        HTML document
    """
    sections_html = "".join(_render_section(section, state) for section in SECTIONS)
    disabled = " disabled" if state.is_submitting else ""
    button_label = "Saving..." if state.is_submitting else "Save Settings"
    banner = '<div class="banner" role="status">Settings saved</div>' if saved else ""
    session_field = (
        f'<input type="hidden" name="session_token" value="{escape(session_token)}">'
        if session_token else ""
    )

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <title>Affiliate Settings - {escape(shop)}</title>
  <style>{PAGE_STYLE}</style>
</head>
<body>
  <form id="settings-form" class="page" method="post" action="{escape(action_url)}">
    {session_field}
    <div class="page-header">
      <h1>Affiliate Settings</h1>
      <button id="save-button" class="primary" type="submit"{disabled}>{button_label}</button>
    </div>
    {banner}
    <div class="layout">
      <div>{sections_html}
      </div>{_render_preview(state)}
    </div>
  </form>
  <script>{PAGE_SCRIPT}</script>
</body>
</html>"""
